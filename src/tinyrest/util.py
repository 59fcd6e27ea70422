import inspect
import urllib.parse


def normalize_path(val: str) -> str:
    """Make sure a path starts and ends with a slash."""
    if not val.startswith("/"):
        val = "/" + val
    if not val.endswith("/"):
        val += "/"
    return val


def merge_query(query_string: str, params: list[tuple[str, str]]) -> str:
    """Append ``name=value`` pairs to an existing query string."""
    extra = urllib.parse.urlencode(params)
    if query_string and extra:
        return f"{query_string}&{extra}"
    return query_string or extra


def type_from_callable(func, index):
    try:
        params = inspect.signature(func).parameters
        param_type = list(params.values())[index].annotation
        if param_type != inspect.Parameter.empty:
            return param_type
    except (TypeError, IndexError):
        pass
    return None
