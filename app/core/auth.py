from __future__ import annotations

import uuid

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash

from app.core.extensions import db, login_manager
from app.core.models import Staff

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@login_manager.user_loader
def load_staff(user_id: str) -> Staff | None:
    try:
        return db.session.get(Staff, uuid.UUID(user_id))
    except ValueError:
        return None


def staff_json(staff: Staff) -> dict[str, object]:
    return {
        "id": str(staff.id),
        "email": staff.email,
        "full_name": staff.full_name,
        "level": staff.level,
    }


@auth_bp.post("/login")
def login_post():
    data = request.get_json(silent=True) or request.form
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    staff = Staff.query.filter_by(email=email).first()
    if not staff or not staff.is_active or not check_password_hash(staff.password_hash, password):
        return jsonify({"error": "Invalid credentials"}), 401
    login_user(staff)
    return jsonify(staff_json(staff))


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True})


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(staff_json(current_user))
