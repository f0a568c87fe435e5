"""
A basic example application showcasing problem_details with
simple hooks configured.

Run from the `examples` directory with:
    $ uvicorn hooks:app
"""

import structlog
from fastapi import FastAPI, Request, Response

from problem_details.middleware import register

logger = structlog.get_logger()


def log_error(request: Request, exc: Exception) -> None:
    logger.warning('request_failed', path=request.url.path, error=str(exc))


def add_response_header(request: Request, response: Response, exc: Exception) -> None:
    response.headers['X-Custom-Header'] = 'foobar'


app = FastAPI()
register(
    app=app,
    pre_hooks=[log_error],
    post_hooks=[add_response_header],
)


@app.get('/error')
async def error():
    raise ValueError('something went wrong')


# Response:
#
# $ curl -i localhost:8000/error
# HTTP/1.1 500 Internal Server Error
# date: Wed, 30 Sep 2020 20:43:32 GMT
# server: uvicorn
# content-length: 104
# content-type: application/problem+json
# x-custom-header: foobar
#
# {"status":500,"title":"Unexpected Server Error","detail":"something went wrong","exc_type":"ValueError"}

# In application logs, the error gets logged
#
# INFO:     Uvicorn running on http://127.0.0.1:8000 (Press CTRL+C to quit)
# 2020-09-30 20:43:32 [warning  ] request_failed    error=something went wrong path=/error
# ...
