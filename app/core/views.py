"""
Core views providing infrastructure endpoints and response helpers.

health_check is used by Docker health checks, load balancers and uptime
monitors. service_error_response turns a failed ServiceResult into the
``{"error", "error_code"}`` body every API view returns on failure.
"""

from django.db import connection
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response

# Error codes that are not 400 Bad Request
ERROR_CODE_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "UNAUTHORIZED": status.HTTP_403_FORBIDDEN,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "CONCURRENT_MODIFICATION": status.HTTP_409_CONFLICT,
    "DUPLICATE_TX_HASH": status.HTTP_409_CONFLICT,
    "DISPUTE_ALREADY_OPEN": status.HTTP_409_CONFLICT,
    "DUPLICATE_REVIEW": status.HTTP_409_CONFLICT,
    "ALREADY_SETTLED": status.HTTP_409_CONFLICT,
    "CONFLICT": status.HTTP_409_CONFLICT,
}


def service_error_response(result):
    """Build the error Response for a failed ServiceResult."""
    return Response(
        {"error": result.error, "error_code": result.error_code},
        status=ERROR_CODE_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Example Response:
        {"status": "healthy", "database": "connected"}
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    return JsonResponse(health_status, status=200 if is_healthy else 503)
