"""
REST façade and CLI for polyllm.

Mount ``polyllm_api.urls`` under ``/v1/`` and add ``polyllm_api`` to
INSTALLED_APPS; the app registers the built-in providers on startup.
"""
