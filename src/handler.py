"""
HTTP handlers for the portfolio API.

Handlers take API Gateway proxy events and return proxy responses
({statusCode, headers, body}). lambda_handler routes a request to the
matching endpoint:

    GET  /api/health    service status
    GET  /api/projects  static project list
    POST /api/contact   contact form submission

Every path ends in a JSON response; unexpected errors become a generic 500.
"""

import base64
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from config import Settings
from domain.models import SubmissionInput
from domain.submission_processor import DELIVERY_FAILED_MESSAGE, SubmissionProcessor
from integrations import mail_transport
from services import projects as project_service
from services.submission_log import SubmissionLog

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO').upper())

# Add console handler when running outside a managed runtime
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET,OPTIONS,PATCH,DELETE,POST,PUT',
    'Access-Control-Allow-Headers': 'Content-Type',
}

# Built on first use (or at startup by the dev server) and reused across invocations
processor: Optional[SubmissionProcessor] = None


def build_processor(settings: Settings) -> SubmissionProcessor:
    """Select the mail transport and wire the submission pipeline."""
    transport = mail_transport.configure_transport(settings)
    return SubmissionProcessor(
        settings=settings,
        transport=transport,
        submission_log=SubmissionLog(settings.submissions_file),
    )


def get_processor() -> SubmissionProcessor:
    global processor
    if processor is None:
        processor = build_processor(Settings.from_env())
    return processor


def _response(status_code: int, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    headers = dict(CORS_HEADERS)
    if body is None:
        return {'statusCode': status_code, 'headers': headers, 'body': ''}

    headers['Content-Type'] = 'application/json'
    return {
        'statusCode': status_code,
        'headers': headers,
        'body': json.dumps(body),
    }


def _request_line(event: Dict[str, Any]) -> Tuple[str, str]:
    """Extract (method, path) from a REST (v1) or HTTP API (v2) proxy event."""
    http_context = (event.get('requestContext') or {}).get('http') or {}
    method = event.get('httpMethod') or http_context.get('method') or 'GET'
    path = event.get('path') or event.get('rawPath') or http_context.get('path') or '/'

    if len(path) > 1:
        path = path.rstrip('/')
    return method.upper(), path


def _parse_json_body(event: Dict[str, Any]) -> Any:
    """Decode the JSON body. Malformed or missing bodies decode to an empty dict."""
    body = event.get('body')
    if not body:
        return {}

    try:
        if event.get('isBase64Encoded'):
            body = base64.b64decode(body).decode('utf-8')
        return json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        logger.info(f"Ignoring malformed request body: {e}")
        return {}


def health_check(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Simple health check endpoint for monitoring.
    """
    return _response(200, {
        'status': 'ok',
        'message': 'Portfolio API is running',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'emailConfigured': bool(processor is not None and processor.email_configured),
    })


def projects_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return _response(200, {
        'success': True,
        'data': project_service.list_projects(),
    })


def contact_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Handle a contact form submission.

    Request body: {name, email, subject, message}
    Response: 200 {success, message} | 400 {success, errors} | 500 {success, message}
    """
    submission = SubmissionInput.from_payload(_parse_json_body(event))
    outcome = get_processor().process(submission)

    if outcome.success:
        logger.info(f"✓ Contact submission handled: {outcome!r}")
    elif outcome.error_detail:
        logger.warning(f"⚠ Contact submission failed: {outcome!r}")

    return _response(outcome.status_code, outcome.to_response_body())


ROUTES: Dict[str, Tuple[str, Callable[[Dict[str, Any], Any], Dict[str, Any]]]] = {
    '/api/health': ('GET', health_check),
    '/api/projects': ('GET', projects_handler),
    '/api/contact': ('POST', contact_handler),
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Route an API request to its handler.

    Args:
        event: API Gateway proxy event
        context: Runtime context (unused)

    Returns:
        Proxy response dict
    """
    method, path = _request_line(event)
    logger.info(f"{method} {path}")

    if method == 'OPTIONS':
        return _response(200)

    route = ROUTES.get(path)
    if route is None:
        return _response(404, {'success': False, 'message': 'API endpoint not found'})

    allowed_method, route_handler = route
    if method != allowed_method:
        return _response(405, {'success': False, 'message': 'Method not allowed'})

    try:
        return route_handler(event, context)
    except Exception as e:
        logger.error(f"Error handling {method} {path}: {e}", exc_info=True)
        return _response(500, {'success': False, 'message': DELIVERY_FAILED_MESSAGE})
