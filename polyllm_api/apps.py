import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class PolyllmApiConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "polyllm_api"
    verbose_name = "polyllm REST façade"

    def ready(self) -> None:  # pragma: no cover - import side effects only
        if not getattr(settings, "POLYLLM_AUTOREGISTER", True):
            return
        # Registration happens once, before any request is served.
        try:
            from polyllm.core.providers import register_default_providers
            from polyllm.core.registry import get_provider_registry

            register_default_providers(get_provider_registry())
        except Exception:
            logger.error(
                "Failed to register LLM providers during startup. "
                "Provider calls will fail with UnknownProvider until the issue is resolved.",
                exc_info=True,
            )
