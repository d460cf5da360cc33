from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.ecowaste.backend import BackendError, backend
from app.ecowaste.modules.collection_routes.service import (
    ALGORITHMS,
    BIN_PRIORITIES,
    FREQUENCIES,
    FUEL_TYPES,
    OPTIMIZATION_OPTIONS,
    ROUTE_STATUSES,
    ROUTES_PER_PAGE,
    VEHICLE_TYPES,
    build_route_payload,
    fill_vehicle_from_collector,
    needs_optimization,
    normalize_algorithm,
    route_summary,
    validate_route_payload,
)
from app.ecowaste.rbac import require_role
from app.ecowaste.utils import DAYS_OF_WEEK, dig, normalize_text, parse_int

bp = Blueprint("collection_routes", __name__)


# ---------- List ----------
@bp.get("/routes")
@require_role("collector", "admin")
def routes_list():
    user = g.current_user
    search = normalize_text(request.args.get("q"))
    status = normalize_text(request.args.get("status")) or "all"
    if status not in ROUTE_STATUSES:
        status = "all"
    page = max(parse_int(request.args.get("page"), 1) or 1, 1)

    params = {"page": page, "limit": ROUTES_PER_PAGE, "search": search, "status": None if status == "all" else status}
    if user.is_collector:
        params["assignedCollector"] = user.id
    try:
        data = backend().routes.list(**params)
    except BackendError as e:
        flash(f"Failed to load routes: {e.message}", "danger")
        data = {}
    routes = data.get("routes") or []
    pagination = data.get("pagination") or {"currentPage": page, "totalPages": 1, "totalRoutes": len(routes)}

    return render_template(
        "admin/routes/list.html",
        routes=routes,
        summary=route_summary(routes),
        pagination=pagination,
        search=search,
        status=status,
        statuses=ROUTE_STATUSES,
    )


# ---------- New ----------
def _form_choices(district: str) -> dict:
    api = backend()
    choices: dict = {"collectors": [], "cities": [], "bins": []}
    try:
        choices["collectors"] = api.users.list(userType="collector", limit=100).get("users") or []
        choices["bins"] = api.waste_bins.list(limit=100).get("wasteBins") or []
    except BackendError as e:
        flash(f"Failed to load form data: {e.message}", "danger")
    try:
        choices["cities"] = api.locations.cities(district).get("cities") or []
    except BackendError:
        choices["cities"] = []
    return choices


@bp.get("/routes/new")
@require_role("admin")
def routes_new_get():
    district = normalize_text(request.args.get("district")) or "colombo"
    return render_template(
        "admin/routes/new.html",
        district=district,
        days=DAYS_OF_WEEK,
        frequencies=FREQUENCIES,
        vehicle_types=VEHICLE_TYPES,
        fuel_types=FUEL_TYPES,
        bin_priorities=BIN_PRIORITIES,
        **_form_choices(district),
    )


@bp.post("/routes/new")
@require_role("admin")
def routes_new_post():
    payload = build_route_payload(request.form)
    errors = validate_route_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("collection_routes.routes_new_get", district=payload["district"]))

    api = backend()
    try:
        payload = fill_vehicle_from_collector(api, payload)
    except BackendError as e:
        # Vehicle auto-fill is best-effort; the route is still created.
        current_app.logger.info("Vehicle auto-fill skipped (collector=%s): %s", payload["assignedCollector"], e.message)

    try:
        data = api.routes.create(payload)
    except BackendError as e:
        flash(e.message or "Failed to create route", "danger")
        return redirect(url_for("collection_routes.routes_new_get", district=payload["district"]))

    flash("Route created successfully!", "success")
    route_id = dig(data, "route._id")
    if route_id:
        return redirect(url_for("collection_routes.route_detail", route_id=route_id))
    return redirect(url_for("collection_routes.routes_list"))


# ---------- Detail ----------
@bp.get("/routes/<route_id>")
@require_role("collector", "admin")
def route_detail(route_id: str):
    try:
        route = backend().routes.get(route_id).get("route")
    except BackendError as e:
        if e.status == 404:
            abort(404)
        flash(f"Failed to load route details: {e.message}", "danger")
        return redirect(url_for("collection_routes.routes_list"))
    if not route:
        abort(404)
    return render_template("admin/routes/detail.html", route=route, needs_optimization=needs_optimization(route))


@bp.post("/routes/<route_id>/delete")
@require_role("admin")
def route_delete(route_id: str):
    try:
        backend().routes.delete(route_id)
    except BackendError as e:
        flash(e.message or "Failed to delete route", "danger")
        return redirect(url_for("collection_routes.route_detail", route_id=route_id))
    current_app.logger.info("Route deleted id=%s by user=%s", route_id, g.current_user.id)
    flash("Route deleted successfully", "success")
    return redirect(url_for("collection_routes.routes_list"))


@bp.post("/routes/<route_id>/optimize")
@require_role("collector", "admin")
def route_optimize(route_id: str):
    try:
        backend().routes.optimize(route_id, "dijkstra")
    except BackendError as e:
        flash(e.message or "Failed to optimize route", "danger")
        return redirect(url_for("collection_routes.routes_list"))
    flash("Route optimized successfully", "success")
    return redirect(url_for("collection_routes.routes_list"))


@bp.post("/routes/<route_id>/bins/<bin_id>/collected")
@require_role("collector", "admin")
def bin_collected(route_id: str, bin_id: str):
    try:
        backend().routes.mark_bin_collected(route_id, bin_id)
    except BackendError as e:
        flash(e.message or "Failed to update bin", "danger")
    return redirect(url_for("collection_routes.route_detail", route_id=route_id))


@bp.post("/routes/<route_id>/bins/<bin_id>/revert")
@require_role("collector", "admin")
def bin_revert(route_id: str, bin_id: str):
    try:
        backend().routes.revert_bin(route_id, bin_id)
    except BackendError as e:
        flash(e.message or "Failed to update bin", "danger")
    return redirect(url_for("collection_routes.route_detail", route_id=route_id))


# ---------- Optimization ----------
def _optimization_page(algorithm: str, results: dict | None = None):
    user = g.current_user
    api = backend()
    params = {"status": "active", "limit": 100}
    if not user.is_admin:
        params["assignedCollector"] = user.id
    try:
        routes = api.routes.list(**params).get("routes") or []
    except BackendError as e:
        flash(f"Failed to load routes: {e.message}", "danger")
        routes = []

    recommendations: dict[str, list] = {}
    for route in routes:
        try:
            recommendations[route["_id"]] = api.route_optimization.recommendations(route["_id"]).get("recommendations") or []
        except BackendError:
            recommendations[route["_id"]] = []

    return render_template(
        "admin/routes/optimization.html",
        routes=routes,
        recommendations=recommendations,
        stale={r["_id"]: needs_optimization(r) for r in routes},
        algorithms=ALGORITHMS,
        algorithm=algorithm,
        results=results,
    )


@bp.get("/route-optimization")
@require_role("collector", "admin")
def optimization():
    return _optimization_page(normalize_algorithm(request.args.get("algorithm")))


@bp.post("/route-optimization/optimize")
@require_role("collector", "admin")
def optimization_run():
    algorithm = normalize_algorithm(request.form.get("algorithm"))
    route_ids = [r for r in request.form.getlist("route_ids") if normalize_text(r)]
    if not route_ids:
        flash("Please select routes to optimize", "danger")
        return redirect(url_for("collection_routes.optimization", algorithm=algorithm))

    api = backend().route_optimization
    try:
        if len(route_ids) == 1:
            results = api.optimize(route_ids[0], algorithm, dict(OPTIMIZATION_OPTIONS))
            flash(
                f"Route optimized! Saved {results.get('timeSaved', 0)} minutes and "
                f"LKR {float(results.get('costSavings') or 0):.0f}",
                "success",
            )
        else:
            results = api.optimize_multiple(route_ids, algorithm, dict(OPTIMIZATION_OPTIONS))
            flash(
                f"{len(results.get('optimizedRoutes') or [])} routes optimized! Total savings: "
                f"LKR {float(results.get('totalCostSavings') or 0):.0f}",
                "success",
            )
    except BackendError as e:
        flash(e.message or "Route optimization failed", "danger")
        return redirect(url_for("collection_routes.optimization", algorithm=algorithm))

    current_app.logger.info("Route optimization algorithm=%s routes=%s by user=%s", algorithm, len(route_ids), g.current_user.id)
    return _optimization_page(algorithm, results=results)
