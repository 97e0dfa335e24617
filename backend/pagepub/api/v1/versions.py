# pagepub/api/v1/versions.py
from flask import request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity

from pagepub.domain.errors import ValidationError
from pagepub.normalizers.pagination import normalize_offset_page, parse_offset_pagination
from pagepub.normalizers.version import normalize_version
from pagepub.utils.decorators import roles_required
from pagepub.wiring import publish_controller, version_store
from . import v1_bp

DEFAULT_DIFF_FORMAT = "unified"


def _publish_payload():
    data = request.get_json(silent=True) or {}

    version_name = data.get("version_name")
    if version_name is not None and not isinstance(version_name, str):
        raise ValidationError("version_name must be a string")

    metadata = data.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object")

    return version_name, metadata


def _version_ref(version):
    return {"id": version.id, "version_number": version.version_number}


# ------------------------
# Transitions
# ------------------------

@v1_bp.route("/pages/<page_id>/versions/publish", methods=["POST"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def publish_page(page_id):
    version_name, metadata = _publish_payload()

    version = publish_controller().publish(
        page_id,
        version_name=version_name,
        metadata=metadata,
        actor_id=get_jwt_identity(),
    )

    return jsonify({
        "message": "Page published successfully",
        "version": normalize_version(version, active_version_id=version.id),
    }), 201


@v1_bp.route("/pages/<page_id>/versions", methods=["POST"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def create_version(page_id):
    version_name, metadata = _publish_payload()

    version = publish_controller().create_version(
        page_id,
        version_name=version_name,
        metadata=metadata,
        actor_id=get_jwt_identity(),
    )

    return jsonify({
        "message": "Version created",
        "version": normalize_version(version),
    }), 201


@v1_bp.route("/pages/<page_id>/versions/<version_id>/publish", methods=["POST"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def publish_existing_version(page_id, version_id):
    version = publish_controller().publish_existing(
        page_id,
        version_id,
        actor_id=get_jwt_identity(),
    )

    return jsonify({
        "message": "Version published successfully",
        "version": normalize_version(version, active_version_id=version.id),
    }), 200


@v1_bp.route("/pages/<page_id>/versions/unpublish", methods=["POST"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def unpublish_page(page_id):
    previous = publish_controller().unpublish(page_id, actor_id=get_jwt_identity())

    return jsonify({
        "message": "Page unpublished successfully" if previous else "Page was not published",
        "previous_version_id": previous,
    }), 200


@v1_bp.route("/pages/<page_id>/versions/<version_id>", methods=["DELETE"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def delete_version(page_id, version_id):
    publish_controller().delete_version(page_id, version_id, actor_id=get_jwt_identity())
    return jsonify({"message": "Version deleted successfully"}), 200


# ------------------------
# Reads
# ------------------------

@v1_bp.route("/pages/<page_id>/versions", methods=["GET"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def list_versions(page_id):
    limit, offset = parse_offset_pagination(request.args)
    controller = publish_controller()

    status = controller.status(page_id)
    versions, total = controller.store.list_versions(page_id, limit=limit, offset=offset)

    response = normalize_offset_page(
        "versions",
        versions,
        lambda v: normalize_version(v, active_version_id=status.current_published_version_id),
        total=total,
        limit=limit,
        offset=offset,
    )
    response["current_published_version_id"] = status.current_published_version_id
    response["has_unpublished_changes"] = status.has_unpublished_changes

    return jsonify(response)


@v1_bp.route("/pages/<page_id>/versions/has-changes", methods=["GET"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def has_unpublished_changes(page_id):
    status = publish_controller().status(page_id)

    return jsonify({
        "page_id": status.page_id,
        "has_unpublished_changes": status.has_unpublished_changes,
        "current_published_version_id": status.current_published_version_id,
    })


@v1_bp.route("/pages/<page_id>/versions/<version_id>", methods=["GET"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def get_version(page_id, version_id):
    store = version_store()
    version = store.get_version(version_id)

    if version.page_id != page_id:
        raise ValidationError("Version does not belong to this page")

    include_snapshot = request.args.get("include_page_json", "false").lower() in ("1", "true", "yes")
    active = store.get_active_version(page_id)

    return jsonify({
        "version": normalize_version(
            version,
            active_version_id=active.id if active else None,
            snapshot=store.load_snapshot(version) if include_snapshot else None,
        )
    })


@v1_bp.route("/pages/<page_id>/versions/compare/<version1_id>/<version2_id>", methods=["GET"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def compare_versions(page_id, version1_id, version2_id):
    fmt = request.args.get("format", DEFAULT_DIFF_FORMAT)
    controller = publish_controller()

    result = controller.compare_versions(page_id, version1_id, version2_id, fmt)

    return jsonify({
        "format": result.format.value,
        "diff": result.diff,
        "version1": _version_ref(controller.store.get_version(version1_id)),
        "version2": _version_ref(controller.store.get_version(version2_id)),
    })


@v1_bp.route("/pages/<page_id>/versions/compare-draft/<version_id>", methods=["GET"])
@jwt_required()
@roles_required("VERSION_ADMIN_ROLES")
def compare_draft(page_id, version_id):
    fmt = request.args.get("format", DEFAULT_DIFF_FORMAT)
    controller = publish_controller()

    result = controller.compare_draft(page_id, version_id, fmt)
    status = controller.status(page_id)

    return jsonify({
        "format": result.format.value,
        "diff": result.diff,
        "version": _version_ref(controller.store.get_version(version_id)),
        "has_unpublished_changes": status.has_unpublished_changes,
    })
