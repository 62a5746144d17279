import json
from flask import Response

from .utils import make_json_serializable
from .exceptions import (
    ConfigValidationError,
    UnknownProfileError,
    TemplateNotFound,
    BuiltinTemplateError,
    BackupNotFound,
    CheckpointNotFound,
    StateNotFound,
    InvalidStateError,
    DockerUnavailable,
)


class MyResponse():
    
    def __init__(self, success: bool, data: dict = {}, reason: str = None, status: int = None) -> None:
        self.success = success
        self.data = data
        self.reason = reason
        self.status = status
    
    def to_json(self):

        new_data = make_json_serializable(self.data)

        if 'response' in new_data:
            raise Warning("Found 'response' as key in data; overwriting 'response': success in json.")
        response_dict = {
            'response': 'success' if self.success else 'failed',
            **new_data
        }

        if not self.status:
            self.status = 200 if self.success else 500

        if self.reason:
            response_dict['reason'] = self.reason
        to_return = json.dumps(response_dict)
        return Response(to_return, status=self.status, mimetype='application/json')


# Status codes for the errors a route is expected to run into; anything else is a 500.
_ERROR_STATUSES = {
    ConfigValidationError: 400,
    InvalidStateError: 400,
    BuiltinTemplateError: 400,
    UnknownProfileError: 404,
    TemplateNotFound: 404,
    BackupNotFound: 404,
    CheckpointNotFound: 404,
    StateNotFound: 404,
    DockerUnavailable: 503,
}

def response_from_error(e: Exception, data: dict = {}):
    status = 500
    for cls, code in _ERROR_STATUSES.items():
        if isinstance(e, cls):
            status = code
            break
    if isinstance(e, ConfigValidationError) and e.errors:
        data = {**data, 'errors': e.errors}
    return MyResponse(False, data, reason=str(e), status=status).to_json()
