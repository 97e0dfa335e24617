import os

from flask import Flask, send_file, current_app
from flask_swagger_ui import get_swaggerui_blueprint

from .config import config_by_name
from .extensions import db, migrate, jwt
from .logging_config import configure_logging
from .api.v1 import v1_bp
from .cli import register_cli
from .errors import register_error_handlers
from .rendering import RenderCache, register_draft_headers
from .services import (
    Collaborators,
    JsonLogicConditionEvaluator,
    RoleAccessPolicy,
    SqlDocumentStore,
    SqlTableDataSource,
    TemplateInterpolator,
    utc_clock,
)
from . import models  # noqa: F401  (registers tables with db.metadata)


def create_app(
    config_name: str = "development",
    *,
    data_source=None,
    condition_evaluator=None,
    interpolator=None,
    access_policy=None,
    clock=None,
) -> Flask:
    """
    Application factory.

    The keyword arguments replace the default collaborators (tests pass an
    in-memory data source and a fixed clock).
    """
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    configure_logging(app)

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # -------------------------------------------------
    # Publishing core collaborators
    # -------------------------------------------------
    app.extensions["pagepub"] = Collaborators(
        documents=SqlDocumentStore(),
        data_source=data_source or SqlTableDataSource(prefix=app.config["DATA_TABLE_PREFIX"]),
        conditions=condition_evaluator or JsonLogicConditionEvaluator(),
        interpolator=interpolator or TemplateInterpolator(),
        access_policy=access_policy or RoleAccessPolicy(app.config["DRAFT_PREVIEW_ROLES"]),
        clock=clock or utc_clock,
    )
    app.extensions["pagepub_render_cache"] = RenderCache(app.config["RENDER_CACHE_SIZE"])

    # -------------------------------------------------
    # API Blueprints
    # -------------------------------------------------
    register_draft_headers(app)
    app.register_blueprint(v1_bp, url_prefix="/api/v1")
    register_error_handlers(app)
    register_cli(app)

    # -------------------------------------------------
    # Serve OpenAPI YAML
    # -------------------------------------------------
    @app.route("/openapi/pagepub.yaml", methods=["GET"], endpoint="openapi_pagepub")
    def serve_openapi():
        spec_path = os.path.join(
            current_app.root_path,
            "api",
            "v1",
            "pagepub_openapi.yaml",
        )

        if not os.path.exists(spec_path):
            raise FileNotFoundError("pagepub_openapi.yaml not found")

        return send_file(
            spec_path,
            mimetype="application/yaml",
            as_attachment=False,
        )

    # -------------------------------------------------
    # Swagger UI
    # -------------------------------------------------
    SWAGGER_URL = "/swagger"
    API_URL = "/openapi/pagepub.yaml"

    swaggerui_blueprint = get_swaggerui_blueprint(
        SWAGGER_URL,
        API_URL,
        config={
            "app_name": "Page Publishing API",
            "deepLinking": True,
            "persistAuthorization": True,
        },
    )

    app.register_blueprint(swaggerui_blueprint, url_prefix=SWAGGER_URL)

    app.logger.debug("pagepub app created with %s config", config_name)
    return app
