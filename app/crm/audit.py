import json
import logging
from typing import Any

from flask import current_app, g, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from app.crm.db import db_session
from app.crm.models import AuditEvent

logger = logging.getLogger(__name__)


def record_event(
    *,
    actor: Any,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent | None:
    """
    Append an audit event and commit it.

    The API call being audited has already happened by the time this runs,
    so a failing audit write is logged and does not fail the request.
    """
    in_request = has_request_context()
    ev = AuditEvent(
        request_id=getattr(g, "request_id", None) if in_request else None,
        actor_user_id=str(actor.id) if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=request.remote_addr if in_request else None,
    )
    s = db_session()
    try:
        s.add(ev)
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Audit write failed (action=%s entity_id=%s)", action, entity_id)
        return None
    logger.info("audit %s %s=%s actor=%s", action, entity_type, entity_id, ev.actor_user_email)
    return ev
