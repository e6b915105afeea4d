"""
DOS Django Adapter Views
========================
Read-only JSON views over the stock read model.

Each request builds ONE StockSnapshot and answers from it.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET

from adapters.django_api.wiring import build_dependencies
from engines.reconciliation.errors import (
    UnknownEntityError,
    UnknownReferenceError,
    ValidationError,
)
from projections.stock import StockSnapshot


def error_response(
    *, code: str, message: str, details: Optional[dict] = None,
) -> dict[str, Any]:
    return {
        "ok": False,
        "error": {"code": code, "message": message, "details": details or {}},
    }


def success_response(data: Any, *, meta: Optional[dict] = None) -> dict[str, Any]:
    return {"ok": True, "data": data, "meta": meta or {}}


def _json_error(code: str, message: str, status: int = 400,
                details: Optional[dict] = None) -> JsonResponse:
    return JsonResponse(
        error_response(code=code, message=message, details=details),
        status=status,
    )


def _parse_int(value: Optional[str], field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{field_name} must be an integer.") from exc


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.lower() in ("1", "true", "yes")


def _meta(snapshot: StockSnapshot) -> dict[str, Any]:
    return {
        "summary": snapshot.result.summary(),
        "diagnostics": [d.to_dict() for d in snapshot.diagnostics],
    }


def _dispatch(request: HttpRequest,
              handler: Callable[[HttpRequest, StockSnapshot], Any]) -> JsonResponse:
    try:
        snapshot = build_dependencies().service.snapshot()
        data = handler(request, snapshot)
    except UnknownEntityError as exc:
        return _json_error("NOT_FOUND", str(exc), status=404)
    except UnknownReferenceError as exc:
        return _json_error(
            "UNKNOWN_REFERENCE", str(exc), status=422,
            details={"diagnostics": [d.to_dict() for d in exc.diagnostics]},
        )
    except ValidationError as exc:
        return _json_error("INVALID_INPUT", str(exc), status=400)
    except ValueError as exc:
        return _json_error("INVALID_REQUEST", str(exc), status=400)
    return JsonResponse(success_response(data, meta=_meta(snapshot)))


# ══════════════════════════════════════════════════════════════
# HANDLERS
# ══════════════════════════════════════════════════════════════

def _report(request: HttpRequest, snapshot: StockSnapshot):
    rows = snapshot.report(
        location_id=request.GET.get("location_id") or None,
        kind=request.GET.get("kind") or None,
        include_zero=_parse_bool(request.GET.get("include_zero"), False),
    )
    return [row.to_dict() for row in rows]


def _low_stock(request: HttpRequest, snapshot: StockSnapshot):
    threshold = _parse_int(request.GET.get("threshold"), "threshold")
    return [row.to_dict() for row in snapshot.low_stock(threshold)]


def _total_value(request: HttpRequest, snapshot: StockSnapshot):
    location_id = request.GET.get("location_id") or None
    return {
        "location_id": location_id,
        "total_value": str(snapshot.total_value(location_id)),
    }


def _negative(request: HttpRequest, snapshot: StockSnapshot):
    return [entry.to_dict() for entry in snapshot.negative_stock()]


def _product_totals(request: HttpRequest, snapshot: StockSnapshot):
    return [total.to_dict() for total in snapshot.product_totals()]


# ══════════════════════════════════════════════════════════════
# VIEWS
# ══════════════════════════════════════════════════════════════

@require_GET
def stock_report_view(request: HttpRequest) -> JsonResponse:
    return _dispatch(request, _report)


@require_GET
def stock_location_view(request: HttpRequest, location_id: str) -> JsonResponse:
    return _dispatch(
        request,
        lambda req, snap: [r.to_dict() for r in snap.by_location(location_id)],
    )


@require_GET
def stock_product_view(request: HttpRequest, product_id: str) -> JsonResponse:
    return _dispatch(
        request,
        lambda req, snap: [r.to_dict() for r in snap.by_product(product_id)],
    )


@require_GET
def stock_low_view(request: HttpRequest) -> JsonResponse:
    return _dispatch(request, _low_stock)


@require_GET
def stock_value_view(request: HttpRequest) -> JsonResponse:
    return _dispatch(request, _total_value)


@require_GET
def stock_negative_view(request: HttpRequest) -> JsonResponse:
    return _dispatch(request, _negative)


@require_GET
def stock_product_totals_view(request: HttpRequest) -> JsonResponse:
    return _dispatch(request, _product_totals)
