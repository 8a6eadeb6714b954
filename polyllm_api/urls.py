from django.urls import path

from . import views

urlpatterns = [
    path("chat/completions", views.chat_completions, name="chat_completions"),
    path("evaluations", views.evaluations, name="evaluations"),
    path("providers", views.providers, name="providers"),
]
