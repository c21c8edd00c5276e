from flask import Blueprint, g, render_template

from app.crm.navigation import visible_menu_items
from app.crm.rbac import VIEW_DASHBOARD, get_permissions, require_permission

bp = Blueprint("routes", __name__)


@bp.get("/")
@require_permission(VIEW_DASHBOARD)
def index():
    user = g.current_user
    # Dashboard cards mirror the sidebar, minus the dashboard itself.
    sections = [item for item in visible_menu_items(user) if item.endpoint != "routes.index"]
    return render_template(
        "dashboard/index.html",
        sections=sections,
        permissions=get_permissions(user.role),
    )


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No API or DB access.
    """
    return "ok", 200
