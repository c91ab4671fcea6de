# crm_core/views_alert_jobs.py
from __future__ import annotations

import logging

from django.http import HttpResponse
from drf_spectacular.utils import extend_schema
from rest_framework.authentication import SessionAuthentication
from rest_framework.response import Response
from rest_framework.views import APIView

from crm_core.alerts.scheduler import RunSummary, run_alert_generator, run_security_monitor
from crm_core.permissions import HasAlertServiceToken

logger = logging.getLogger(__name__)


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class AlertJobView(APIView):
    """
    HTTP trigger for one alert job pass.

    POST (any body) runs the job:
      200 {"message": ..., <summary counters>}
      500 {"error": "<message>"} on a top-level failure
    OPTIONS answers the CORS preflight with "ok".

    Alerts written before a failure are kept; the next run's dedup check
    fills any gap.
    """

    authentication_classes = [SessionAuthentication]
    permission_classes = [HasAlertServiceToken]

    job_name: str = ""
    success_message: str = ""

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        for header, value in CORS_HEADERS.items():
            response[header] = value
        return response

    def options(self, request, *args, **kwargs):
        return HttpResponse("ok", content_type="text/plain")

    def run_job(self) -> RunSummary:
        raise NotImplementedError

    @extend_schema(tags=["Jobs"], request=None)
    def post(self, request):
        try:
            summary = self.run_job()
        except Exception as exc:
            logger.exception("[%s] Critical error.", self.job_name)
            return Response({"error": str(exc)}, status=500)

        payload = {"message": self.success_message}
        payload.update(summary.as_dict())
        return Response(payload, status=200)


class AlertGeneratorView(AlertJobView):
    job_name = "alert-generator"
    success_message = "Verificação concluída."

    def run_job(self) -> RunSummary:
        return run_alert_generator()


class SecurityMonitorView(AlertJobView):
    job_name = "security-monitor"
    success_message = "Security check completed."

    def run_job(self) -> RunSummary:
        return run_security_monitor()
