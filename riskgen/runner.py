"""Run bootstrap: wires configuration, identities and collaborators into one traffic run."""

from datetime import UTC, datetime

import structlog
from pydantic import BaseModel
from rich.console import Console

from riskgen.generators.profile_generator import IdentityPools, ProfileGenerator
from riskgen.clients.risk_api import RiskApiClient
from riskgen.config import Settings
from riskgen.fingerprint.provider import BrowserFingerprintProvider, FingerprintProvider
from riskgen.identity.resolver import IdentityResolver, load_identity_keys
from riskgen.identity.store import ProfileStore
from riskgen.orchestrator.outcomes import OutcomeAggregator, render_summary
from riskgen.orchestrator.scheduler import BatchScheduler
from riskgen.orchestrator.transaction import TransactionOptions, TransactionStateMachine
from riskgen.request_builder import RequestBuilder
from riskgen.shared.errors import FingerprintError
from riskgen.shared.randomness import RandomSource

logger = structlog.get_logger()


class RunReport(BaseModel):
    user_source: str
    selection_mode: str
    transactions: int
    concurrency: int
    counts: dict[str, int]
    started_at: datetime
    finished_at: datetime

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def build_client(settings: Settings) -> RiskApiClient:
    return RiskApiClient(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        environment_id=settings.envid,
        auth_base_url=settings.auth_base_url,
        api_base_url=settings.api_base_url,
        timeout_seconds=settings.http_timeout_seconds,
        max_connections=settings.number_of_concurrent_runs,
    )


def build_fingerprint_provider(settings: Settings) -> BrowserFingerprintProvider:
    return BrowserFingerprintProvider(
        page_url=settings.test_page_url,
        password=settings.fingerprint_password,
        timeout_seconds=settings.fingerprint_timeout_seconds,
        headless=settings.headless,
    )


async def resolve_user_agent(settings: Settings, provider: FingerprintProvider | None) -> str:
    """The browser's real user agent when fingerprinting, else the configured default."""
    detect = getattr(provider, "detect_user_agent", None)
    if not settings.include_sdk or detect is None:
        return settings.default_user_agent
    try:
        user_agent = await detect()
    except FingerprintError as exc:
        logger.warning("user_agent_detection_failed", error=str(exc))
        return settings.default_user_agent
    logger.info("user_agent_detected", user_agent=user_agent)
    return user_agent


async def run(
    settings: Settings,
    *,
    rng: RandomSource | None = None,
    client: RiskApiClient | None = None,
    fingerprint_provider: FingerprintProvider | None = None,
    console: Console | None = None,
) -> RunReport:
    """Execute one traffic run and return its outcome report.

    Raises ``ConfigurationError`` before any request is sent when inputs are
    unusable, and ``RemoteCallError`` when the run's credential cannot be
    obtained.
    """
    settings.validate_run()
    started_at = datetime.now(UTC)
    rng = rng or RandomSource(settings.seed)

    all_keys = load_identity_keys(settings.identity_file)
    pools = IdentityPools.from_directory(settings.data_dir)
    builder = RequestBuilder.from_file(settings.template_path)

    if settings.include_sdk and fingerprint_provider is None:
        fingerprint_provider = build_fingerprint_provider(settings)
    if not settings.include_sdk:
        fingerprint_provider = None
    user_agent = await resolve_user_agent(settings, fingerprint_provider)

    store = ProfileStore.load(settings.profiles_path)
    generator = ProfileGenerator(pools, rng, user_agent, assign_browser=settings.randomize_browser)
    resolver = IdentityResolver(store, generator)
    selected = resolver.resolve(all_keys, settings.number_of_total_runs, settings.selection_mode)
    profiles = {key: store.get(key) for key in dict.fromkeys(selected)}

    aggregator = OutcomeAggregator()
    async with client or build_client(settings) as api:
        await api.fetch_token()
        machine = TransactionStateMachine(
            client=api,
            builder=builder,
            profiles=profiles,
            options=TransactionOptions.from_settings(settings, pools.bad_ips),
            rng=rng,
            fingerprint_provider=fingerprint_provider,
        )
        scheduler = BatchScheduler(
            machine.run,
            aggregator,
            concurrency=settings.number_of_concurrent_runs,
            mode=settings.selection_mode,
            cycle_length=len(all_keys),
        )
        counts = await scheduler.run(selected)

    render_summary(counts, console)
    return RunReport(
        user_source=settings.user_source.value,
        selection_mode=settings.selection_mode.value,
        transactions=len(selected),
        concurrency=settings.number_of_concurrent_runs,
        counts=counts,
        started_at=started_at,
        finished_at=datetime.now(UTC),
    )
