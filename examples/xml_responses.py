"""
A basic example application showcasing problem_details with
XML responses.

Run from the `examples` directory with:
    $ uvicorn xml_responses:app
"""

from fastapi import FastAPI
from fastapi.exceptions import HTTPException

from problem_details.middleware import XmlProblemResponse, register


app = FastAPI()
register(app, response_class=XmlProblemResponse)


@app.get('/teapot')
async def teapot():
    raise HTTPException(418, 'short and stout')


# Response:
#
# NOTE: some browsers don't like the content type application/problem+xml and
#   report an error. Use curl instead to see the response in this case.
#
# $ curl localhost:8000/teapot
# <?xml version="1.0" encoding="UTF-8"?><problem><status>418</status><title>I'm a Teapot</title><detail>short and stout</detail></problem>
