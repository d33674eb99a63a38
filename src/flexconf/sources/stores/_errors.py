"""Recognise "not found" errors from the cloud SDKs without importing them."""


def is_not_found(error: BaseException) -> bool:
    """Return True if an SDK exception means the entry or version does not exist.

    Handles botocore ``ClientError`` (``ResourceNotFoundException`` /
    ``ParameterNotFound`` codes), Azure ``ResourceNotFoundError`` (status 404)
    and hvac ``InvalidPath``.
    """
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        code = response.get("Error", {}).get("Code")
        if code in ("ResourceNotFoundException", "ParameterNotFound"):
            return True

    if getattr(error, "status_code", None) == 404:
        return True

    return type(error).__name__ in ("ResourceNotFoundError", "InvalidPath")
