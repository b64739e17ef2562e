from flask import request

from squadup.errors import ValidationError


def json_object():
    """The request's JSON body as a dict. No body at all reads as ``{}``."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('body', 'Expected a JSON object')
    return data
