from django.urls import reverse
from rest_framework.response import Response
from rest_framework.views import APIView


class ApiHomeView(APIView):
    """
    Public index of the Nexor back office API, grouped by area.
    """

    authentication_classes = []
    permission_classes = []

    def get(self, request):
        return Response(
            {
                "service": "Nexor CRM",
                "auth": {
                    "token_obtain": reverse("token_obtain_pair"),
                    "token_refresh": reverse("token_refresh"),
                },
                "alerts": {
                    "inbox": reverse("alert-list"),
                    "rules": reverse("alert-rule-list"),
                    "preferences": reverse("notification-preference-list"),
                },
                "jobs": {
                    "alert_generator": reverse("alert-generator"),
                    "security_monitor": reverse("security-monitor"),
                },
                "docs": {
                    "schema": reverse("schema"),
                    "swagger": reverse("swagger-ui"),
                },
                "health": reverse("health"),
            }
        )
