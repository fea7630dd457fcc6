from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_tenant_id, current_user_id, json_body, login_required
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.approval_service
    queries = container.approval_queries

    def _route(body: dict):
        route = body.get("route", body.get("route_template"))
        if route is None:
            raise ValidationError("route is required")
        return route

    def _stage_ordinal(body: dict) -> int:
        try:
            return int(body.get("stage_ordinal"))
        except (TypeError, ValueError):
            raise ValidationError("stage_ordinal must be an integer") from None

    # -------- documents --------
    @app.route("/api/documents", methods=["POST"], endpoint="api_create_draft")
    @login_required
    def create_draft():
        body = json_body()
        document_id = service.create_draft(
            template_id=str(body.get("template_id") or ""),
            creator=current_user_id(),
            data=body.get("data") or {},
            title=body.get("title") or "",
            tenant_id=current_tenant_id(),
        )
        return jsonify({"success": True, "document_id": document_id}), 201

    @app.route("/api/documents/submit", methods=["POST"], endpoint="api_submit_document")
    @login_required
    def submit_document():
        body = json_body()
        document_id = service.submit_document(
            str(body.get("template_id") or ""),
            body.get("data") or {},
            _route(body),
            current_user_id(),
            title=body.get("title") or "",
            tenant_id=current_tenant_id(),
        )
        return jsonify({"success": True, "document_id": document_id}), 201

    @app.route("/api/documents/<document_id>", methods=["GET"], endpoint="api_get_document")
    @login_required
    def get_document(document_id: str):
        snapshot = service.get_document(document_id, actor=current_user_id())
        return jsonify({"success": True, **snapshot.to_dict()})

    @app.route("/api/documents/<document_id>", methods=["PUT"], endpoint="api_update_draft")
    @login_required
    def update_draft(document_id: str):
        body = json_body()
        snapshot = service.update_draft(
            document_id,
            actor=current_user_id(),
            data=body.get("data"),
            title=body.get("title"),
        )
        return jsonify({"success": True, **snapshot.to_dict()})

    @app.route("/api/documents/<document_id>", methods=["DELETE"], endpoint="api_delete_draft")
    @login_required
    def delete_draft(document_id: str):
        service.delete_draft(document_id, actor=current_user_id())
        return jsonify({"success": True})

    @app.route("/api/documents/<document_id>/submit", methods=["POST"], endpoint="api_submit_draft")
    @login_required
    def submit_draft(document_id: str):
        body = json_body()
        snapshot = service.submit_draft(document_id, actor=current_user_id(), route_template=_route(body))
        return jsonify({"success": True, **snapshot.to_dict()})

    @app.route("/api/documents/<document_id>/decide", methods=["POST"], endpoint="api_decide")
    @login_required
    def decide(document_id: str):
        body = json_body()
        snapshot = service.decide(
            document_id,
            actor=current_user_id(),
            stage_ordinal=_stage_ordinal(body),
            decision=body.get("decision") or "",
            comment=body.get("comment"),
        )
        return jsonify({"success": True, **snapshot.to_dict()})

    @app.route("/api/documents/<document_id>/recall", methods=["POST"], endpoint="api_recall")
    @login_required
    def recall(document_id: str):
        snapshot = service.recall(document_id, actor=current_user_id())
        return jsonify({"success": True, **snapshot.to_dict()})

    @app.route("/api/documents/<document_id>/acknowledge", methods=["POST"], endpoint="api_acknowledge")
    @login_required
    def acknowledge(document_id: str):
        body = json_body()
        snapshot = service.acknowledge(document_id, actor=current_user_id(), stage_ordinal=_stage_ordinal(body))
        return jsonify({"success": True, **snapshot.to_dict()})

    # -------- boxes --------
    def _list_args(*names: str) -> dict:
        args = {name: request.args.get(name) for name in names}
        args["page"] = request.args.get("page")
        args["limit"] = request.args.get("limit")
        return args

    def _page(items: list, args: dict):
        # page/limit were already validated by the query
        page = int(args["page"] or 1)
        limit = int(args["limit"] or queries.page_size)
        return jsonify({"success": True, "items": items, "page": page, "limit": limit})

    @app.route("/api/approvals/inbox", methods=["GET"], endpoint="api_inbox")
    @login_required
    def inbox():
        args = _list_args("status", "template_id")
        return _page(queries.inbox(current_user_id(), **args), args)

    @app.route("/api/approvals/outbox", methods=["GET"], endpoint="api_outbox")
    @login_required
    def outbox():
        args = _list_args("status", "template_id")
        return _page(queries.outbox(current_user_id(), **args), args)

    @app.route("/api/approvals/pending", methods=["GET"], endpoint="api_pending")
    @login_required
    def pending():
        return jsonify({"success": True, "items": queries.pending(current_user_id())})

    @app.route("/api/approvals/drafts", methods=["GET"], endpoint="api_drafts")
    @login_required
    def drafts():
        args = _list_args("template_id")
        return _page(queries.drafts(current_user_id(), **args), args)

    @app.route("/api/approvals/counts", methods=["GET"], endpoint="api_counts")
    @login_required
    def counts():
        return jsonify({"success": True, "counts": queries.counts(current_user_id())})

    @app.route("/api/approvals/statistics", methods=["GET"], endpoint="api_statistics")
    @login_required
    def statistics():
        stats = queries.statistics(
            current_tenant_id(),
            request.args.get("period"),
            template_id=request.args.get("template_id"),
            user_id=request.args.get("user_id"),
        )
        return jsonify({"success": True, "statistics": stats})
