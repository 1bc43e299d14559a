from flask import Blueprint

bp = Blueprint("api", __name__)

from tablecast.routes.api import routes  # noqa: F401, E402
