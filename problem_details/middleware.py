"""FastAPI middleware and error handlers for RFC 9457 Problem Details responses.

For details on the Problem Details format, see: https://www.rfc-editor.org/rfc/rfc9457.html
"""

import inspect
from typing import (Any, Awaitable, Callable, Dict, Mapping, Optional,
                    Sequence, Type, Union)

import structlog
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from . import schema
from .encoders import JSON_CONTENT_TYPE, XML_CONTENT_TYPE
from .errors import DecodeError, ProblemDetailsException, SerializationError
from .problem import ProblemDetails

logger = structlog.get_logger(__name__)

PreHook = Callable[[Request, Exception], Union[Any, Awaitable[Any]]]
PostHook = Callable[[Request, Response, Exception], Union[Any, Awaitable[Any]]]


class ProblemResponse(Response):
    """A Response for RFC 9457 Problem Details, encoded as JSON.

    The response status is taken from the problem (500 if it has none).
    If the problem cannot be encoded, the response falls back to a bare
    500 Internal Server Error with no body.
    """

    media_type: str = JSON_CONTENT_TYPE

    def __init__(self, *args, debug: bool = False, **kwargs) -> None:
        self.debug: bool = debug
        self.problem_headers: Dict[str, str] = {}
        super(ProblemResponse, self).__init__(*args, **kwargs)

    def init_headers(self, headers: Mapping[str, str] = None) -> None:
        h = dict(headers) if headers else {}
        h.update(self.problem_headers)

        super(ProblemResponse, self).init_headers(h)

    def render(self, content: Any) -> bytes:
        """Render the provided content as encoded Problem Details bytes."""
        p = to_problem(content)
        if isinstance(content, (ProblemDetailsException, HTTPException)):
            self.problem_headers = dict(content.headers or {})

        self.problem = p
        try:
            body = self.encode(p)
        except SerializationError:
            logger.exception('problem_encode_failed', problem=str(p), media_type=self.media_type)
            self.status_code = 500
            self.media_type = None
            self.problem_headers = {}
            return b''

        # Dynamically set the response status_code to match
        # the status code of the Problem.
        self.status_code = p.status_code
        return body

    def encode(self, problem: ProblemDetails) -> bytes:
        return problem.to_json(debug=self.debug).encode('utf-8')


class XmlProblemResponse(ProblemResponse):
    """A Response for RFC 9457 Problem Details, encoded as XML."""

    media_type: str = XML_CONTENT_TYPE

    def encode(self, problem: ProblemDetails) -> bytes:
        return problem.to_xml().encode('utf-8')


def to_problem(content: Any) -> ProblemDetails:
    """Convert response content into a ProblemDetails.

    Args:
        content: A ProblemDetails, a ProblemDetailsException, a dictionary
            in the flattened wire format, an HTTPException, a
            RequestValidationError or any other Exception. Anything else
            becomes a generic 500 problem describing the content.

    Returns:
        The ProblemDetails to render. Content that cannot be turned into a
        valid problem, such as a dict or HTTPException with a status outside
        [100, 599], is reported as an unexpected server error instead.
    """
    try:
        return _convert(content)
    except DecodeError as e:
        logger.warning('problem_conversion_failed', content_type=type(content).__name__, error=str(e))
        return from_exception(e)


def _convert(content: Any) -> ProblemDetails:
    if isinstance(content, ProblemDetails):
        return content
    if isinstance(content, ProblemDetailsException):
        return content.problem
    if isinstance(content, dict):
        return ProblemDetails.from_dict(content)
    if isinstance(content, HTTPException):
        return from_http_exception(content)
    if isinstance(content, RequestValidationError):
        return from_request_validation_error(content)
    if isinstance(content, Exception):
        return from_exception(content)
    return (
        ProblemDetails.from_status_code(500)
        .with_title('Application Error')
        .with_detail('Got unexpected content when trying to generate error response')
        .with_extensions({'content': str(content)})
    )


def from_http_exception(exc: HTTPException) -> ProblemDetails:
    """Convert an HTTPException, using its detail (if any) as the problem detail.

    Raises:
        InvalidStatus: The exception's status code is not in [100, 599].
    """
    problem = ProblemDetails.from_status_code(exc.status_code)
    if exc.detail:
        problem = problem.with_detail(exc.detail)
    return problem


def from_request_validation_error(exc: RequestValidationError) -> ProblemDetails:
    """Convert a RequestValidationError into a 400 "Validation Error" problem.

    The individual validation failures are listed in the `errors`
    extension field.
    """
    return (
        ProblemDetails.from_status_code(400)
        .with_title('Validation Error')
        .with_detail('One or more user-provided parameters are invalid')
        .with_extensions({'errors': jsonable_encoder(exc.errors())})
    )


def from_exception(exc: Exception) -> ProblemDetails:
    """Convert an exception nothing else handled into a 500 problem.

    The title is "Unexpected Server Error" rather than the canonical
    "Internal Server Error", which marks the exception as one that was
    never mapped to a problem. The exception message becomes the detail
    and its class name the `exc_type` extension field.
    """
    return (
        ProblemDetails.from_status_code(500)
        .with_title('Unexpected Server Error')
        .with_detail(str(exc))
        .with_extensions({'exc_type': exc.__class__.__name__})
    )


def get_exception_handler(
        debug: bool = False,
        pre_hooks: Optional[Sequence[PreHook]] = None,
        post_hooks: Optional[Sequence[PostHook]] = None,
        response_class: Type[ProblemResponse] = ProblemResponse,
) -> Callable:
    """Build an exception handler which answers with a problem response.

    The returned coroutine has the `(request, exc)` signature FastAPI and
    Starlette expect from exception handlers.

    Pre-hooks are called with `(request, exc)` before the response is
    built; post-hooks are called with `(request, response, exc)` after.
    Hooks may be plain functions or coroutine functions. They run in the
    order given, and an error raised by a hook escapes the handler.

    Args:
        debug: Indent JSON bodies.
        pre_hooks: Called before the problem response is built.
        post_hooks: Called once the problem response is built.
        response_class: ProblemResponse or a subclass of it, such as
            XmlProblemResponse.
    """
    async def exception_handler(request: Request, exc: Exception) -> ProblemResponse:
        await run_hooks(pre_hooks, request, exc)
        response = response_class(exc, debug=debug)
        await run_hooks(post_hooks, request, response, exc)
        return response
    return exception_handler


async def run_hooks(hooks: Optional[Sequence[Union[PreHook, PostHook]]], *args: Any) -> None:
    """Call each hook with `args`, awaiting the coroutine functions."""
    for hook in hooks or ():
        if inspect.iscoroutinefunction(hook):
            await hook(*args)
        else:
            hook(*args)


def register(
    app: FastAPI,
    pre_hooks: Optional[Sequence[PreHook]] = None,
    post_hooks: Optional[Sequence[PostHook]] = None,
    add_schema: Union[str, bool] = False,
    response_class: Type[ProblemResponse] = ProblemResponse,
) -> None:
    """Make a FastAPI application answer errors with problem details.

    ProblemDetailsException, HTTPException and RequestValidationError get
    exception handlers, and ProblemMiddleware is added to catch anything
    else the application raises. JSON bodies are indented when `app.debug`
    is set. Every handler uses `response_class`; the format is fixed for
    the application rather than negotiated per request.

    With `add_schema`, the flat problem schema is published under
    `#/components/schemas/Problem` (or under the given name), so routes can
    refer to it:

        @app.get('/widgets/{id}', responses={
            404: {'content': {'application/problem+json': {
                'schema': {'$ref': '#/components/schemas/Problem'},
            }}},
        })
        def get_widget(id: int):
            ...

    Args:
        app: The application to configure.
        pre_hooks: Called before each problem response is built.
        post_hooks: Called once each problem response is built.
        add_schema: True to publish the schema as `Problem`, or the name to
            publish it under.
        response_class: The response class used to encode problems.
    """
    handler = get_exception_handler(
        debug=app.debug,
        pre_hooks=pre_hooks,
        post_hooks=post_hooks,
        response_class=response_class,
    )
    for exc_class in (ProblemDetailsException, HTTPException, RequestValidationError):
        app.add_exception_handler(exc_class, handler)

    app.add_middleware(
        ProblemMiddleware,
        debug=app.debug,
        pre_hooks=pre_hooks,
        post_hooks=post_hooks,
        response_class=response_class,
    )

    if add_schema:
        _publish_schema(app, add_schema if isinstance(add_schema, str) else 'Problem')


def _publish_schema(app: FastAPI, name: str) -> None:
    problem_schema = schema.Problem.model_json_schema(ref_template='#/components/schemas/{model}')

    def openapi() -> Dict[str, Any]:
        if not app.openapi_schema:
            app.openapi_schema = get_openapi(
                title=app.title,
                version=app.version,
                openapi_version=app.openapi_version,
                description=app.description,
                routes=app.routes,
                tags=app.openapi_tags,
                servers=app.servers,
            )
        components = app.openapi_schema.setdefault('components', {})
        components.setdefault('schemas', {})[name] = problem_schema
        return app.openapi_schema

    app.openapi = openapi  # type: ignore


class ProblemMiddleware:
    """ASGI middleware turning unhandled exceptions into problem responses.

    If the application has already started its response when the exception
    is raised, nothing more is sent. The exception is re-raised in either
    case so that server error logging and test clients still see it.
    """

    def __init__(
            self,
            app: ASGIApp,
            debug: bool = False,
            pre_hooks: Optional[Sequence[PreHook]] = None,
            post_hooks: Optional[Sequence[PostHook]] = None,
            response_class: Type[ProblemResponse] = ProblemResponse,
    ) -> None:
        self.app: ASGIApp = app
        self.debug: bool = debug
        self.pre_hooks = list(pre_hooks or [])
        self.post_hooks = list(post_hooks or [])
        self.response_class = response_class
        self._handler = get_exception_handler(
            debug=debug,
            pre_hooks=self.pre_hooks,
            post_hooks=self.post_hooks,
            response_class=response_class,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            await self.app(scope, receive, send)
            return

        started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal started
            if message['type'] == 'http.response.start':
                started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if not started:
                response = await self._handler(Request(scope), exc)
                await response(scope, receive, send)
            raise
