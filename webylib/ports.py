"""Local-compose port assignments for each server flavor."""

SERVER_WEBCASH = 8181
SERVER_RGB = 8182
SERVER_VOUCHER = 8183


def url(port: int) -> str:
    """Build the ``http://localhost:{port}`` URL used by the lifecycle harness."""
    return f"http://localhost:{port}"