"""
A basic example application showcasing problem_details

Run from the `examples` directory with:
    $ uvicorn basic:app
"""

from fastapi import FastAPI
from pydantic import BaseModel

from problem_details import ProblemDetails, ProblemDetailsException
from problem_details.middleware import register


app = FastAPI()
register(app)


class AuthenticationError(ProblemDetailsException):
    """An example of how to create a custom subclass of ProblemDetailsException.

    This class also defines additional headers which should be sent with
    the error response.
    """

    headers = {
        'WWW-Authenticate': 'Bearer',
    }

    def __init__(self, msg: str) -> None:
        super(AuthenticationError, self).__init__(
            ProblemDetails.from_status_code(401).with_detail(msg),
        )


class OutOfCredit(BaseModel):
    balance: int
    accounts: list


@app.get('/')
async def root():
    return {'message': 'Hello World'}


@app.get('/auth')
async def custom():
    raise AuthenticationError('user is unauthenticated')


@app.get('/credit')
async def credit():
    raise ProblemDetailsException(
        ProblemDetails.from_status_code(403)
        .with_type('https://example.com/probs/out-of-credit')
        .with_title('You do not have enough credit.')
        .with_detail('Your current balance is 30, but that costs 50.')
        .with_instance('/account/12345/msgs/abc')
        .with_extensions(OutOfCredit(balance=30, accounts=['/account/12345', '/account/67890'])),
    )


@app.get('/error')
async def error():
    raise ValueError('something went wrong')


# Response:
#
# $ curl localhost:8000/error
# {"status":500,"title":"Unexpected Server Error","detail":"something went wrong","exc_type":"ValueError"}
