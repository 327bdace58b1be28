from contextlib import asynccontextmanager

from tortoise import Tortoise, connections

from helpers.settings import get_settings

MODEL_MODULES = [
    "models.practice",
    "models.phone_number",
    "models.patient",
    "models.call_log",
    "models.appointment",
    "models.lead",
    "models.message",
]

TORTOISE_CONFIG = {
    "connections": {
        "default": get_settings().database_url or "sqlite://db.sqlite3"
    },
    "apps": {
        "models": {
            "models": [*MODEL_MODULES, "aerich.models"],
            "default_connection": "default",
        }
    },
}


@asynccontextmanager
async def lifespan(_):
    await Tortoise.init(config=TORTOISE_CONFIG)
    yield
    await connections.close_all()
