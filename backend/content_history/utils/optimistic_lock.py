from flask import request, abort


def parse_expected_version():
    """
    Reads the version number the editor last saw from the If-Match header.
    Returns None when no lock was requested.
    """
    raw = request.headers.get("If-Match")
    if not raw:
        return None

    raw = raw.strip().strip('"')
    if raw.startswith("W/"):
        raw = raw[2:].strip('"')

    try:
        return int(raw)
    except ValueError:
        abort(400, description="Invalid If-Match header")


def enforce_optimistic_lock(latest_version):
    """
    Enforces optimistic locking on the page's latest version number.
    Raises 409 Conflict if another save landed since the editor loaded it.
    """
    expected = parse_expected_version()
    if expected is None:
        return  # No optimistic lock requested

    if (latest_version or 0) != expected:
        abort(
            409,
            description=(
                f"Conflict detected. Page is at version {latest_version or 0}, "
                f"expected {expected}."
            )
        )
