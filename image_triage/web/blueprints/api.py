"""API blueprint for REST endpoints driving the triage engine."""

from flask import Blueprint, request, jsonify, current_app, send_file
from ...core.engine import CategorizationEngine
from ...core.models import DispatchResult, ImageEntry, Operation
from ...core.exceptions import (
    ImageTriageError, FileSystemError, ValidationError, PermissionDeniedError,
    PathNotFoundError, CollisionError, NothingToUndoError, CatalogExhaustedError
)

api_bp = Blueprint('api', __name__)


def get_engine() -> CategorizationEngine:
    """Get the engine attached to the running application."""
    return current_app.extensions['image_triage']


def handle_api_error(error, operation="operation"):
    """
    Handle API errors and return appropriate JSON response.

    Args:
        error: The exception that occurred
        operation: Description of the operation that failed

    Returns:
        Tuple of (response_dict, status_code)
    """
    current_app.logger.warning(f"API error in {operation}: {error}")

    if isinstance(error, CollisionError):
        return {'error': 'Collision', 'message': str(error)}, 409
    elif isinstance(error, NothingToUndoError):
        return {'error': 'Nothing to undo', 'message': str(error)}, 409
    elif isinstance(error, CatalogExhaustedError):
        return {'error': 'Catalog exhausted', 'message': str(error)}, 409
    elif isinstance(error, ValidationError):
        return {'error': 'Validation error', 'message': str(error)}, 400
    elif isinstance(error, PathNotFoundError):
        return {'error': 'Path not found', 'message': str(error)}, 404
    elif isinstance(error, PermissionDeniedError):
        return {'error': 'Permission denied', 'message': str(error)}, 403
    elif isinstance(error, (FileSystemError, OSError)):
        return {'error': 'File system error', 'message': str(error)}, 500
    else:
        return {'error': 'Application error', 'message': str(error)}, 400


def _entry_to_dict(entry: ImageEntry):
    if entry is None:
        return None
    return {'file_name': entry.file_name, 'path': str(entry.path)}


def _operation_to_dict(operation: Operation):
    return {
        'sequence': operation.sequence,
        'kind': operation.kind.value,
        'file_name': operation.entry.file_name,
        'category': operation.category,
        'source_path': str(operation.source_path),
        'target_path': str(operation.target_path),
        'timestamp': operation.timestamp.isoformat(),
    }


def _state_to_dict(engine: CategorizationEngine):
    return {
        'state': engine.state.value,
        'current': _entry_to_dict(engine.current_entry()),
        'remaining': engine.remaining_count(),
        'can_undo': engine.can_undo(),
        'categories': list(engine.folders.labels),
    }


def _result_response(engine: CategorizationEngine, result: DispatchResult):
    data = _state_to_dict(engine)
    data['operation'] = _operation_to_dict(result.operation)
    data['reversed'] = result.reversed
    return jsonify(data)


@api_bp.route('/state', methods=['GET'])
def get_state():
    """Current image, remaining count and undo availability."""
    return jsonify(_state_to_dict(get_engine()))


@api_bp.route('/history', methods=['GET'])
def get_history():
    """Committed operations that can still be undone, oldest first."""
    engine = get_engine()
    return jsonify({'operations': [_operation_to_dict(op) for op in engine.history()]})


@api_bp.route('/image', methods=['GET'])
def get_image():
    """Send the bytes of the current image."""
    engine = get_engine()
    entry = engine.current_entry()

    try:
        if entry is None:
            raise CatalogExhaustedError("No images left to triage")
        if not entry.path.exists():
            raise PathNotFoundError(f"File no longer exists: {entry.path}")
        return send_file(entry.path, max_age=0)
    except (ImageTriageError, OSError) as e:
        response_data, status_code = handle_api_error(e, "get image")
        return jsonify(response_data), status_code


@api_bp.route('/assign', methods=['POST'])
def assign():
    """
    Move the current image into a category.

    Request body: {"category": "<label>"}
    """
    engine = get_engine()
    data = request.get_json(silent=True) or {}

    try:
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        label = data.get('category')
        if not label:
            raise ValidationError("Missing required field: category")
        result = engine.assign(label)
        return _result_response(engine, result)
    except ImageTriageError as e:
        response_data, status_code = handle_api_error(e, "assign")
        return jsonify(response_data), status_code


@api_bp.route('/discard', methods=['POST'])
def discard():
    """Move the current image into the trash folder."""
    engine = get_engine()

    try:
        return _result_response(engine, engine.discard())
    except ImageTriageError as e:
        response_data, status_code = handle_api_error(e, "discard")
        return jsonify(response_data), status_code


@api_bp.route('/undo', methods=['POST'])
def undo():
    """Reverse the most recent assign or discard."""
    engine = get_engine()

    try:
        return _result_response(engine, engine.undo())
    except ImageTriageError as e:
        response_data, status_code = handle_api_error(e, "undo")
        return jsonify(response_data), status_code


@api_bp.route('/skip', methods=['POST'])
def skip():
    """Drop the current entry if its file vanished outside the session."""
    engine = get_engine()

    try:
        skipped = engine.skip_missing()
        data = _state_to_dict(engine)
        data['skipped'] = _entry_to_dict(skipped)
        return jsonify(data)
    except ImageTriageError as e:
        response_data, status_code = handle_api_error(e, "skip")
        return jsonify(response_data), status_code
