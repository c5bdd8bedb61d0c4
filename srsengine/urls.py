from django.urls import include, path

urlpatterns = [
    path("", include("study.api.urls")),
]
