from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_tenant_id, current_user_id, json_body, login_required
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.template_service

    def _definition(body: dict) -> dict:
        definition = body.get("form_schema", body.get("formSchema", body.get("definition")))
        if not isinstance(definition, dict):
            raise ValidationError("form_schema is required")
        return definition

    @app.route("/api/templates", methods=["GET"], endpoint="api_list_templates")
    @login_required
    def list_templates():
        include_inactive = request.args.get("include_inactive") in {"1", "true"}
        rows = service.list_for_tenant(current_tenant_id(), include_inactive=include_inactive)
        return jsonify({"success": True, "templates": [t.to_dict(include_definition=False) for t in rows]})

    @app.route("/api/templates", methods=["POST"], endpoint="api_create_template")
    @login_required
    def create_template():
        body = json_body()
        template_id = service.create_schema(
            _definition(body),
            tenant_id=current_tenant_id(),
            name=body.get("name") or "",
            code=body.get("code"),
            description=body.get("description"),
            icon=body.get("icon"),
            created_by=current_user_id(),
            is_active=bool(body.get("is_active", True)),
        )
        return jsonify({"success": True, "template_id": template_id}), 201

    @app.route("/api/templates/<template_id>", methods=["GET"], endpoint="api_get_template")
    @login_required
    def get_template(template_id: str):
        template = service.get(template_id, tenant_id=current_tenant_id())
        return jsonify({"success": True, "template": template.to_dict()})

    @app.route("/api/templates/<template_id>", methods=["PUT"], endpoint="api_revise_template")
    @login_required
    def revise_template(template_id: str):
        body = json_body()
        template = service.revise_schema(
            template_id,
            _definition(body),
            tenant_id=current_tenant_id(),
            name=body.get("name"),
            description=body.get("description"),
            icon=body.get("icon"),
        )
        return jsonify({"success": True, "template": template.to_dict()})

    @app.route("/api/templates/<template_id>", methods=["DELETE"], endpoint="api_deactivate_template")
    @login_required
    def deactivate_template(template_id: str):
        service.deactivate(template_id, tenant_id=current_tenant_id())
        return jsonify({"success": True})

    @app.route("/api/templates/<template_id>/clone", methods=["POST"], endpoint="api_clone_template")
    @login_required
    def clone_template(template_id: str):
        body = json_body()
        new_id = service.clone(
            template_id,
            tenant_id=current_tenant_id(),
            new_name=body.get("name") or "",
            created_by=current_user_id(),
        )
        return jsonify({"success": True, "template_id": new_id}), 201

    @app.route("/api/templates/<template_id>/validate", methods=["POST"], endpoint="api_validate_payload")
    @login_required
    def validate_payload(template_id: str):
        payload = request.get_json(silent=True)
        result = service.validate_payload(template_id, payload, tenant_id=current_tenant_id())
        return jsonify({"success": True, **result.to_dict()})
