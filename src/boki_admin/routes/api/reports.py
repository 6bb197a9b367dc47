"""
Reports API - sales summary, top sellers and daily series, plus exports.

Query params shared by both endpoints:
- period: today | week | month (default: today)
- source: all | online | kiosk (default: all)
"""

from flask import Blueprint, Response, jsonify, request

from boki_admin.context import get_service
from boki_shared.logging_config import get_logger
from boki_shared.serializers import success_response
from boki_shared.services.report_export_service import export_filename, to_csv, to_json
from boki_shared.validation import ValidationError

reports_bp = Blueprint("reports", __name__)
logger = get_logger(__name__)


def _build_report():
    return get_service("report_service").build_report(
        period=request.args.get("period") or "today",
        source=request.args.get("source") or "all",
    )


@reports_bp.get("/reports")
def get_sales_report():
    report = _build_report()
    return jsonify(success_response(report.to_dict()))


@reports_bp.get("/reports/export")
def get_report_export():
    """
    Download the report as a file.

    - format=csv: order ledger with an OVERALL TOTAL row
    - format=json: report sections picked by ``mode`` (full, summary, sales, items)
    """
    export_format = (request.args.get("format") or "csv").lower()
    if export_format not in {"csv", "json"}:
        raise ValidationError(f"Unsupported export format: {export_format}")

    config = get_service("config")
    report = _build_report()
    mode = request.args.get("mode") or None

    if export_format == "csv":
        body = to_csv(report.orders, config.tzinfo, config.currency_code)
        mimetype = "text/csv"
    else:
        body = to_json(
            report,
            mode or "full",
            restaurant=config.restaurant_name,
            timezone_name=config.business_timezone,
        )
        mimetype = "application/json"

    filename = export_filename(export_format, report.period, mode=mode)
    logger.info(f"Exported {report.period} report as {export_format} ({len(report.orders)} orders)")
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
