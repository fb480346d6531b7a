"""
Prometheus metrics endpoint.

This endpoint should be restricted to internal network or monitoring systems only.
"""
from flask import Blueprint, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from salonbook.metrics import registry

metrics_bp = Blueprint('metrics', __name__)


@metrics_bp.route('/metrics')
def metrics():
    """
    Prometheus-formatted metrics in text/plain.

    Not authenticated: restrict by network/firewall rules in production.
    """
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
