"""Lazy boto3 client creation shared by the AWS stores."""

from typing import Any


def create_client(service: str, **client_kwargs: Any) -> Any:
    """Create a boto3 client for ``service``.

    Raises:
        ImportError: If boto3 is not installed
    """
    try:
        import boto3
    except ImportError as e:
        raise ImportError(
            "boto3 package is required for AWS sources. Install with: pip install 'flexconf[aws]'"
        ) from e
    return boto3.client(service, **client_kwargs)
