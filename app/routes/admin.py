from __future__ import annotations

from flask import Blueprint, request

from app.routes.api import handle_action

admin_bp = Blueprint("admin", __name__)


@admin_bp.get("/api/v1/admin/completions")
def rest_completions_list():
    return handle_action(
        "ADMIN_COMPLETIONS_LIST",
        {
            "q": str(request.args.get("q") or "").strip(),
            "status": str(request.args.get("status") or "all").strip(),
            "limit": request.args.get("limit") or 200,
        },
    )


@admin_bp.get("/api/v1/sync/pending")
def rest_sync_pending():
    return handle_action("SYNC_PENDING_LIST", {})


@admin_bp.post("/api/v1/sync/drain")
def rest_sync_drain():
    return handle_action("SYNC_DRAIN", {})
