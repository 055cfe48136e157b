"""
Static portfolio project list served by GET /api/projects.
"""

from typing import Any, Dict, List

PROJECTS: List[Dict[str, Any]] = [
    {
        'id': 1,
        'title': 'Food Taxi',
        'subtitle': 'Zomato Clone',
        'description': 'A food delivery web application with restaurant listings, menu browsing, and cart functionality.',
        'techStack': ['HTML', 'CSS', 'JavaScript'],
    },
    {
        'id': 2,
        'title': 'CLICKER',
        'subtitle': 'Camera Rental Website',
        'description': 'A platform for renting professional camera equipment with booking and catalog features.',
        'techStack': ['HTML', 'CSS', 'JavaScript'],
    },
]


def list_projects() -> List[Dict[str, Any]]:
    """Return a copy of the project list so callers cannot mutate the module data."""
    return [dict(project, techStack=list(project['techStack'])) for project in PROJECTS]
