import logging
from datetime import timedelta
from urllib.parse import urlsplit

from flask import Flask, flash, g, redirect, render_template, request, session, url_for
from dotenv import load_dotenv

from app.ecowaste.config import load_config
from app.ecowaste.backend import BackendUnauthorized, init_backend
from app.ecowaste.routes import bp as routes_bp
from app.ecowaste.auth import bp as auth_bp, clear_auth_session, load_current_user
from app.ecowaste.modules.dashboard.views import bp as dashboard_bp
from app.ecowaste.modules.waste_bins.views import bp as waste_bins_bp
from app.ecowaste.modules.bin_requests.views import bp as bin_requests_bp
from app.ecowaste.modules.collections.views import bp as collections_bp
from app.ecowaste.modules.payments.views import bp as payments_bp
from app.ecowaste.modules.recycling_credits.views import bp as recycling_credits_bp
from app.ecowaste.modules.collection_routes.views import bp as collection_routes_bp
from app.ecowaste.modules.users.views import bp as users_bp
from app.ecowaste.modules.analytics.views import bp as analytics_bp
from app.ecowaste.modules.settings.views import bp as settings_bp
from app.ecowaste.modules.profile.views import bp as profile_bp
from app.ecowaste.modules.locations.views import bp as locations_bp
from app.ecowaste import utils


def _local_referrer() -> str | None:
    ref = urlsplit(request.referrer or "")
    if not ref.path or (ref.netloc and ref.netloc != request.host):
        return None
    return ref.path + (f"?{ref.query}" if ref.query else "")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    level = getattr(logging, str(app.config.get("LOG_LEVEL") or "INFO"), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("app.ecowaste").setLevel(level)

    from app.ecowaste.security import csrf_exempt, ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_user() -> dict:
        from app.ecowaste.rbac import navigation_for, user_has_role

        user = getattr(g, "current_user", None)

        def has_role(*roles: str) -> bool:
            return user_has_role(user, *roles)

        return {"current_user": user, "navigation": navigation_for(user), "has_role": has_role}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        return utils.format_date(value, format)

    app.add_template_filter(utils.format_currency, "currency")
    app.add_template_filter(utils.format_number, "compact")
    app.add_template_filter(utils.humanize, "humanize")
    app.add_template_filter(utils.status_badge, "badge")
    app.add_template_filter(utils.fill_level_band, "fill_band")
    app.add_template_filter(utils.construct_address, "address")
    app.add_template_global(utils.dig, "dig")
    app.add_template_global(utils.entity_id, "entity_id")

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if csrf_exempt(request.endpoint):
                return None
            if not validate_csrf(request):
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("API_BASE_URL_EXPLICIT"):
            raise RuntimeError("API_BASE_URL is required in production.")

    init_backend(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(waste_bins_bp)
    app.register_blueprint(bin_requests_bp)
    app.register_blueprint(collections_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(recycling_credits_bp)
    app.register_blueprint(collection_routes_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(locations_bp)

    app.before_request(load_current_user)

    @app.errorhandler(BackendUnauthorized)
    def _session_expired(e):  # type: ignore[no-redef]
        app.logger.info("Backend rejected token; logging out (request_id=%s)", getattr(g, "request_id", None))
        clear_auth_session()
        flash("Session expired. Please log in again.", "warning")
        if request.method == "GET":
            nxt = request.full_path.rstrip("?")
        else:
            # A POST-only URL would 405 on the GET after login; go back to the page that posted.
            nxt = _local_referrer()
        return redirect(url_for("auth.login_get", next=nxt))

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_role", None)
        if missing:
            app.logger.warning("Forbidden: missing_role=%s request_id=%s", missing, getattr(g, "request_id", None))
        return render_template("errors/403.html", missing_role=missing), 403

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
