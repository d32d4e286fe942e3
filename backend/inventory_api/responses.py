# Overview: Shared JSON error body for routes and auth decorators.

from flask import jsonify


def error_response(message: str, status: int):
    """
    JSON error with the given status.

    The text is sent under both "error" and "message"; the web client
    reads "message".
    """
    return jsonify({"error": message, "message": message}), status
