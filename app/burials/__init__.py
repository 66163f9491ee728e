from flask import Blueprint

burials_bp = Blueprint("burials", __name__, url_prefix="/burials")

from app.burials import routes  # noqa: E402,F401
