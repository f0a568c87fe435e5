"""
A basic example application showcasing problem_details with
debug enabled.

Run from the `examples` directory with:
    $ uvicorn debug:app
"""

from fastapi import FastAPI

from problem_details.middleware import register


app = FastAPI(debug=True)
register(app)


@app.get('/error')
async def error():
    raise ValueError('something went wrong')


# Response:
#
# $ curl localhost:8000/error
# {
#   "status": 500,
#   "title": "Unexpected Server Error",
#   "detail": "something went wrong",
#   "exc_type": "ValueError"
# }
