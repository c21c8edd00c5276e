import logging
from datetime import timedelta

from flask import Flask, flash, g, redirect, render_template, request, session, url_for
from dotenv import load_dotenv

from app.crm import formatting
from app.crm.api_client import ApiUnauthorized, init_api
from app.crm.config import load_config
from app.crm.db import init_db, teardown_db_session
from app.crm.query_cache import init_query_cache
from app.crm.routes import bp as routes_bp
from app.crm.auth import bp as auth_bp, clear_auth, load_current_user
from app.crm.modules.customers.admin import bp as customers_bp
from app.crm.modules.transactions.admin import bp as transactions_bp
from app.crm.modules.invite.admin import bp as invite_bp

_UNTRACKED_PREFIXES = ("/static/", "/health", "/healthz")


def _check_production_config(app: Flask) -> None:
    env = (app.config.get("ENV") or "").strip().lower()
    if env not in ("prod", "production"):
        return
    if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
    if str(app.config.get("DATABASE_URL") or "").startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if not str(app.config.get("API_URL") or "").startswith("https://"):
        raise RuntimeError("API_URL must be an https:// URL in production.")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    _check_production_config(app)

    from app.crm.security import MUTATING_METHODS, ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_navigation() -> dict:
        from app.crm.navigation import is_active, visible_menu_items
        from app.crm.rbac import ROLES, user_has_permission

        user = getattr(g, "current_user", None)

        def has_perm(key: str) -> bool:
            return user_has_permission(user, key)

        return {
            "has_perm": has_perm,
            "current_user": user,
            "role_label": ROLES.get(getattr(user, "role", None) or "", "No role"),
            "nav_items": [(item, is_active(item, request.endpoint)) for item in visible_menu_items(user)],
        }

    for name in (
        "format_date",
        "format_date_only",
        "format_currency",
        "format_status",
        "format_provider",
        "format_plan",
        "or_dash",
    ):
        app.add_template_filter(getattr(formatting, name), name)
    for name in (
        "status_variant",
        "transaction_type_variant",
        "payment_type_variant",
        "is_debit",
    ):
        app.add_template_global(getattr(formatting, name), name)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNTRACKED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in MUTATING_METHODS:
            # Sign-in has no session to protect yet.
            if request.endpoint == "auth.login_post":
                return None
            if not validate_csrf(request):
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    init_db(app)
    init_api(app)
    init_query_cache(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(customers_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(invite_bp)

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(ApiUnauthorized)
    def _api_unauthorized(e):  # type: ignore[no-redef]
        app.logger.info("API rejected token; signing out (request_id=%s)", getattr(g, "request_id", None))
        clear_auth()
        flash("Your session has expired. Please sign in again.", "danger")
        nxt = request.full_path.rstrip("?") if request.method == "GET" else None
        return redirect(url_for("auth.login_get", next=nxt))

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return render_template("errors/403.html", missing_permission=missing), 403

    logging.getLogger(__name__).info("create_app() complete; API_URL=%s", app.config["API_URL"])

    return app
