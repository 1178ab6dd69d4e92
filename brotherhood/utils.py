
def parse_bool(val: str) -> bool:
    match val:
        case "true":
            return True
        case "false":
            return False
    raise ValueError(f"Unparseable boolean value: {val!r}")


def join_path(prefix: str, path: str) -> str:
    """Join a URL path onto a prefix without doubling or dropping slashes."""
    prefix = prefix.rstrip("/")
    path = path.strip("/")
    if not path:
        return prefix or "/"
    return f"{prefix}/{path}"


def is_under(path: str, prefix: str) -> bool:
    """Segment-aware prefix check: `/a/b` is under `/a`, `/ab` is not."""
    prefix = prefix.rstrip("/")
    if not prefix:
        return path.startswith("/")
    return path == prefix or path.startswith(prefix + "/")
