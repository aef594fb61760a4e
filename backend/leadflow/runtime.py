"""Service wiring shared by the API and the scheduler."""

from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from leadflow.adapters.backoffice import BackOfficeClient
from leadflow.clock import Clock, utcnow
from leadflow.config import Settings, settings as app_settings
from leadflow.database import get_session_factory
from leadflow.services.conversion import ConversionEngine
from leadflow.services.leads import LeadService
from leadflow.services.lead_settings import LeadSettingsStore, AutomationStateStore
from leadflow.services.locks import create_tick_lock
from leadflow.services.notifications import Notifier
from leadflow.workers.automation import AutomationScheduler


@dataclass
class Runtime:
    config: Settings
    session_factory: sessionmaker[Session]
    settings_store: LeadSettingsStore
    lead_service: LeadService
    conversion: ConversionEngine
    scheduler: AutomationScheduler
    notifier: Notifier
    backoffice: object

    def close(self) -> None:
        self.scheduler.stop()
        close = getattr(self.backoffice, "close", None)
        if close:
            close()


def build_runtime(
    config: Settings | None = None,
    session_factory: sessionmaker[Session] | None = None,
    backoffice=None,
    notifier: Notifier | None = None,
    clock: Clock = utcnow,
    tick_lock=None,
) -> Runtime:
    config = config or app_settings
    if session_factory is None:
        session_factory = get_session_factory()
    if backoffice is None:
        backoffice = BackOfficeClient(
            config.backoffice_base_url, config.backoffice_api_key, config.backoffice_timeout_seconds,
        )
    notifier = notifier or Notifier(config.slack_webhook_url)

    settings_store = LeadSettingsStore(session_factory, config)
    lead_service = LeadService(
        session_factory, settings_store, clock=clock, notifier=notifier, phone_pattern=config.phone_pattern,
    )
    conversion = ConversionEngine(lead_service, backoffice, notifier=notifier, clock=clock)
    scheduler = AutomationScheduler(
        lead_service,
        backoffice,
        notifier,
        AutomationStateStore(session_factory),
        clock=clock,
        interval_seconds=config.scheduler_interval_seconds,
        tick_lock=tick_lock if tick_lock is not None else create_tick_lock(config),
        agency_name=config.agency_name,
        agent_name=config.automation_agent_name,
    )
    return Runtime(
        config=config,
        session_factory=session_factory,
        settings_store=settings_store,
        lead_service=lead_service,
        conversion=conversion,
        scheduler=scheduler,
        notifier=notifier,
        backoffice=backoffice,
    )
