from tests.util import wsgi
from tests import _config

import typing as t
import tinyrest
from dataclasses import dataclass
from _pytest.assertion import util as _pytest_util


@dataclass(slots=True)
class _Fault:
    key: str
    want: t.Any
    got: t.Any

    def __str__(self):
        return f"{self.key}: expected={self.want!r}, got={self.got!r}"


def basic_handler(content: t.Any, response_type=tinyrest.Response):
    def handler(request: tinyrest.Request, response: response_type):
        return content
    return handler


def vars_handler(request: tinyrest.Request, response: tinyrest.Response):
    """Echo everything the handler can see as request variables."""
    return tinyrest.JsonResponse(request.vars)


def assert_response(resp: wsgi.Response,
                    code: int,
                    content: None | str | bytes | dict | list = None,
                    headers: None | dict[str, str] = None):
    __tracebackhide__ = True
    faults = []

    if code != resp.code:
        faults.append(_Fault("Response.code", code, resp.code))

    if content is not None:
        match content:
            case bytes():
                resp_content = resp.output_bytes()
            case str():
                resp_content = resp.output_str()
            case dict() | list():
                resp_content = resp.output_json()
            case _:
                raise ValueError(f"content is unknown type: ({type(content)})")
        if content != resp_content:
            faults.append(_Fault("Response.content", content, resp_content))

    for k, want in (headers or {}).items():
        got = resp.headers_normalized.get(k.lower())
        if want != got:
            faults.append(_Fault(f"Response.header[{k}]", want, got))

    if faults:
        if len(faults) == 1 and not _config.verbose:
            msg = str(faults[0])
        else:
            details = [repr(resp), *[f">> {f}" for f in faults]]
            if _config.verbose:
                details.append(">-----RESPONSE DUMP-----")
                details.extend(
                    f">|{line}" for line in resp.dump().splitlines())
            msg = "\n".join(details)
        raise AssertionError(_pytest_util.format_explanation(msg))


def assert_produces_response(
        app: wsgi.WSGIApplication,
        url: str,
        code: int,
        content: str | bytes | dict | list | None = None,
        headers: None | dict[str, str] = None,
        **argv):
    __tracebackhide__ = True
    got = wsgi.Request(url, **argv).get_response(app)
    assert_response(got, code, content, headers)
