"""Example FastAPI application collecting request diagnostics.

Run with:
    uvicorn examples.fastapi_example:app --reload

Endpoints:
    /                         - plain response, collected
    /users                    - logs, a database query and a timeline span
    /error                    - raises, recorded with status 500
    /__clockwork/latest       - the most recently collected request
    /__clockwork/<id>         - a collected request by id (see X-Clockwork-Id)

Configuration:
    CLOCKWORK_STORAGE_PATH, CLOCKWORK_ERRORS_ONLY, ... are read by
    load_config(). The router serves the API, so the middleware is told to
    leave those paths alone.
"""

import asyncio
import dataclasses
import logging

from fastapi import FastAPI

from clockworkpy import ClockworkHandler, ClockworkMiddleware, create_storage, load_config
from clockworkpy.adapters.context import get_clockwork
from clockworkpy.adapters.frameworks.fastapi import create_clockwork_router
from clockworkpy.core.authentication import create_authenticator

config = dataclasses.replace(
    load_config(),
    api_path="",
    except_paths=("/__clockwork/*", *load_config().except_paths),
)
storage = create_storage(config)

# Records logged through stdlib logging land in the current request's log
logging.getLogger().addHandler(ClockworkHandler())
logger = logging.getLogger("example")
logger.setLevel(logging.INFO)

app = FastAPI(title="Clockwork Example")
app.include_router(create_clockwork_router(storage, create_authenticator(config)))
app.add_middleware(ClockworkMiddleware, storage=storage, config=config)


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Hello! Check the X-Clockwork-Id header and /__clockwork/latest."}


@app.get("/users")
async def get_users() -> dict[str, list[dict[str, str]]]:
    """Users endpoint recording a log line, a query and a timeline span."""
    clockwork = get_clockwork()
    logger.info("listing users", extra={"page": 1})

    if clockwork is None:
        await asyncio.sleep(0.05)
    else:
        with clockwork.request.timeline.measure("Fetch users", color="blue"):
            await asyncio.sleep(0.05)
        clockwork.add_database_query("SELECT id, name FROM users", duration=50.0)
        clockwork.user_data("users").counters({"returned": 2})

    return {
        "users": [
            {"id": "1", "name": "Alice"},
            {"id": "2", "name": "Bob"},
        ]
    }


@app.get("/error")
async def error_endpoint() -> dict[str, str]:
    """Raises, so the collected request carries status 500 and the exception."""
    raise ValueError("Intentional error for demonstration")
