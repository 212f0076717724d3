"""
Syndicate URL Configuration
"""
from django.urls import path, include, re_path
from django.http import JsonResponse


# Simple healthcheck for production load balancers
def health(request):
    return JsonResponse({"status": "ok"}, status=200)


urlpatterns = [
    # Healthchecks (accept with and without trailing slash)
    path('health/', health, name='health'),
    re_path(r'^(?:health|healthz|livez|readyz)/?$', health),

    # Gang API
    path('api/', include('gangs.urls')),
]
