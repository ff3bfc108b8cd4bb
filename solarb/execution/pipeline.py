"""
Arbitrage Pipeline
==================
Explicit async stages with per-stage deadlines and typed results.

Detection:
    fetch (both venues, concurrent) -> normalize -> match -> rank -> cache

Execution (one attempt):
    ASSEMBLING -> GUARDING -> FINALIZING -> SUBMITTING -> CONFIRMED | REJECTED | EXPIRED

Retry and fallback live here, not in the stages:
- a failed venue fetch falls back to the last cached snapshot set (flagged)
- QuoteUnavailable during assembly may be retried with a fresh assembly
- nothing that has been signed is ever resubmitted

Usage:
    pipeline = ArbPipeline.from_settings()
    report = await pipeline.detect()
    attempt = await pipeline.execute(ArbitrageExecution(report.opportunities[0], 0.1), signer)
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from solders.keypair import Keypair

from config import thresholds
from solarb.arbitrage.matcher import MatchStats, OpportunityMatcher
from solarb.arbitrage.normalizer import normalize_snapshot
from solarb.arbitrage.ranker import rank_opportunities
from solarb.execution.assembler import TransactionAssembler, sol_to_lamports
from solarb.execution.execution_result import AttemptReport, AttemptState, StageResult
from solarb.execution.simulator import TransactionSimulator
from solarb.execution.submitter import ConfirmationStatus, Submitter
from solarb.shared.cache.file_store import CacheFileStore
from solarb.shared.cache.opportunity_cache import OpportunityCache, PoolSnapshotCache
from solarb.shared.models import (
    ArbitrageExecution,
    ArbitrageOpportunity,
    CachedOpportunity,
    PoolSnapshot,
    PricedPool,
    Venue,
)
from solarb.shared.system.errors import (
    ArbError,
    ConfigurationMissing,
    Expired,
    InsufficientBalance,
    InvalidQuote,
    NetworkTimeout,
    QuoteUnavailable,
    TransactionFailed,
)
from solarb.shared.system.logging import Logger
from solarb.venues.base import VenueClient


@dataclass(frozen=True)
class PipelinePolicy:
    fetch_timeout_sec: float = thresholds.FETCH_TIMEOUT_SEC
    assemble_timeout_sec: float = thresholds.QUOTE_TIMEOUT_SEC * 4  # two quotes + two builds
    blockhash_timeout_sec: float = thresholds.BLOCKHASH_TIMEOUT_SEC
    simulation_timeout_sec: float = thresholds.SIMULATION_TIMEOUT_SEC
    relay_timeout_sec: float = thresholds.RELAY_TIMEOUT_SEC
    confirmation_timeout_sec: float = thresholds.CONFIRMATION_WINDOW_SEC + 10.0
    quote_retries: int = 1
    simulate_before_submit: bool = True
    top_n: int = thresholds.TOP_N


@dataclass
class DetectionReport:
    opportunities: List[ArbitrageOpportunity] = field(default_factory=list)
    cached: List[CachedOpportunity] = field(default_factory=list)
    pool_counts: Dict[Venue, int] = field(default_factory=dict)
    rejected_quotes: Dict[Venue, int] = field(default_factory=dict)
    degraded: Dict[Venue, str] = field(default_factory=dict)
    match_stats: Optional[MatchStats] = None
    latency_ms: float = 0.0

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded)


class ArbPipeline:
    def __init__(
        self,
        venues: Dict[Venue, VenueClient],
        matcher: OpportunityMatcher,
        assembler: Optional[TransactionAssembler] = None,
        submitter: Optional[Submitter] = None,
        simulator: Optional[TransactionSimulator] = None,
        pool_cache: Optional[PoolSnapshotCache] = None,
        opportunity_cache: Optional[OpportunityCache] = None,
        file_store: Optional[CacheFileStore] = None,
        policy: Optional[PipelinePolicy] = None,
    ):
        self.venues = venues
        self.matcher = matcher
        self.assembler = assembler
        self.submitter = submitter
        self.simulator = simulator
        self.pool_cache = pool_cache or PoolSnapshotCache()
        self.opportunity_cache = opportunity_cache or OpportunityCache()
        self.file_store = file_store
        self.policy = policy or PipelinePolicy()

    # ═══════════════════════════════════════════════════════════════════════
    # STAGE RUNNER
    # ═══════════════════════════════════════════════════════════════════════

    @staticmethod
    async def run_stage(stage: str, call: Callable[[], Awaitable], timeout: float) -> StageResult:
        """Run one stage under a deadline; taxonomy errors become a failed StageResult."""
        started = time.perf_counter()
        try:
            value = await asyncio.wait_for(call(), timeout=timeout)
            return StageResult(stage, value=value, latency_ms=(time.perf_counter() - started) * 1000)
        except asyncio.TimeoutError:
            error = NetworkTimeout(stage, "stage deadline exceeded", timeout)
        except ArbError as e:
            error = e
        return StageResult(stage, error=error, latency_ms=(time.perf_counter() - started) * 1000)

    # ═══════════════════════════════════════════════════════════════════════
    # DETECTION
    # ═══════════════════════════════════════════════════════════════════════

    async def refresh_venue(self, venue: Venue) -> Tuple[List[PoolSnapshot], Optional[str]]:
        """Fresh snapshots, or the last known set plus the reason it was needed."""
        fresh = await self.pool_cache.get(venue)
        if fresh is not None:
            return list(fresh), None

        client = self.venues[venue]
        result = await self.run_stage(f"fetch_{venue.value}", client.fetch_snapshots, self.policy.fetch_timeout_sec)
        if result.ok:
            await self.pool_cache.put(venue, result.value)
            if self.file_store is not None:
                await self._persist(self.file_store.save_pools, venue, result.value)
            return list(result.value), None

        reason = str(result.error)
        fallback = await self._last_known_pools(venue)
        if fallback is None:
            Logger.error(f"[PIPELINE] {venue.value} unavailable ({reason}) and nothing cached; skipping venue")
            return [], reason

        pools, age = fallback
        Logger.warning(
            f"[PIPELINE] {venue.value} unavailable ({reason}); "
            f"using {len(pools)} cached pools ({age:.0f}s old)"
        )
        return list(pools), reason

    async def _last_known_pools(self, venue: Venue) -> Optional[Tuple[List[PoolSnapshot], float]]:
        in_memory = self.pool_cache.last_known(venue)
        if in_memory is not None:
            return list(in_memory[0]), in_memory[1]
        if self.file_store is None:
            return None
        on_disk = await asyncio.to_thread(self.file_store.load_pools, venue)
        if on_disk is None:
            return None
        timestamp_ms, pools = on_disk
        return pools, time.time() - timestamp_ms / 1000

    @staticmethod
    async def _persist(save: Callable, *args) -> None:
        """Write a cache file off the event loop. A failed write only costs the on-disk copy."""
        try:
            await asyncio.to_thread(save, *args)
        except OSError as e:
            Logger.warning(f"[CACHE] Could not write cache file: {e}")

    def normalize(self, venue: Venue, pools: List[PoolSnapshot], report: DetectionReport) -> List[PricedPool]:
        priced = []
        rejected = 0
        for pool in pools:
            try:
                priced.append(normalize_snapshot(pool))
            except InvalidQuote as e:
                rejected += 1
                Logger.debug(f"[PIPELINE] {venue.value}: {e}")
        report.rejected_quotes[venue] = rejected
        return priced

    async def detect(self) -> DetectionReport:
        Logger.section("Detection Cycle")
        started = time.perf_counter()
        report = DetectionReport()

        order = (Venue.RAYDIUM, Venue.METEORA)
        fetched = await asyncio.gather(*(self.refresh_venue(v) for v in order))

        priced: Dict[Venue, List[PricedPool]] = {}
        by_id: Dict[str, PoolSnapshot] = {}
        for venue, (pools, degraded_reason) in zip(order, fetched):
            report.pool_counts[venue] = len(pools)
            if degraded_reason is not None:
                report.degraded[venue] = degraded_reason
            priced[venue] = self.normalize(venue, pools, report)
            by_id.update({pool.pool_id: pool for pool in pools})

        candidates = self.matcher.match(priced[Venue.RAYDIUM], priced[Venue.METEORA])
        report.match_stats = self.matcher.last_stats
        report.opportunities = rank_opportunities(candidates, self.policy.top_n) if candidates else []

        report.cached = [
            CachedOpportunity(opp, by_id[opp.raydium_pool_id], by_id[opp.meteora_pool_id])
            for opp in report.opportunities
        ]
        await self.opportunity_cache.put(report.cached)
        if self.file_store is not None:
            await self._persist(self.file_store.save_top_n, report.cached)

        report.latency_ms = (time.perf_counter() - started) * 1000
        status = " (degraded: " + ", ".join(v.value for v in report.degraded) + ")" if report.degraded else ""
        Logger.info(f"[PIPELINE] {len(report.opportunities)} opportunities in {report.latency_ms:.0f}ms{status}")
        return report

    async def load_cached_opportunities(self) -> List[CachedOpportunity]:
        """In-memory top-N, else the on-disk copy if it is still inside the TTL."""
        entries = await self.opportunity_cache.all()
        if entries or self.file_store is None:
            return entries

        on_disk = await asyncio.to_thread(self.file_store.load_top_n)
        if on_disk is None:
            return []
        timestamp_ms, loaded = on_disk
        await self.opportunity_cache.put(loaded, stored_at=timestamp_ms / 1000)
        entries = await self.opportunity_cache.all()
        if not entries:
            Logger.warning(f"[CACHE] On-disk top-N is older than {self.opportunity_cache.ttl:.0f}s; ignoring it")
        return entries

    # ═══════════════════════════════════════════════════════════════════════
    # EXECUTION
    # ═══════════════════════════════════════════════════════════════════════

    def _reject(self, report: AttemptReport, error: ArbError) -> AttemptReport:
        report.error = error
        report.advance(AttemptState.EXPIRED if isinstance(error, Expired) else AttemptState.REJECTED)
        Logger.error(f"[PIPELINE] {report.pair_name} {report.state.value}: {error}")
        return report

    async def _assemble(self, execution: ArbitrageExecution, signer: Keypair, report: AttemptReport) -> StageResult:
        current = execution
        for attempt in range(self.policy.quote_retries + 1):
            result = await self.run_stage(
                "assemble",
                lambda: self.assembler.assemble(current, signer.pubkey()),
                self.policy.assemble_timeout_sec,
            )
            report.stages.append(result)
            if result.ok or not (isinstance(result.error, QuoteUnavailable) and result.error.retryable):
                return result
            if attempt < self.policy.quote_retries:
                Logger.warning(f"[PIPELINE] {result.error}; re-assembling ({attempt + 1}/{self.policy.quote_retries})")
                current = ArbitrageExecution(execution.opportunity, execution.amount_in_sol)
        return result

    async def execute(self, execution: ArbitrageExecution, signer: Keypair) -> AttemptReport:
        if self.assembler is None or self.submitter is None:
            raise ConfigurationMissing("submitter", "pipeline was built for detection only")

        opp = execution.opportunity
        report = AttemptReport(pair_name=opp.pair_name, amount_in_sol=execution.amount_in_sol)
        Logger.section(f"Execute {opp.pair_name}")

        # ── ASSEMBLING ──
        report.advance(AttemptState.ASSEMBLING)
        balance = await self.run_stage(
            "balance", lambda: self.submitter.rpc.get_balance(signer.pubkey()), self.policy.blockhash_timeout_sec
        )
        report.stages.append(balance)
        if not balance.ok:
            return self._reject(report, balance.error)
        required = sol_to_lamports(execution.amount_in_sol) + self.assembler.config.tip_lamports
        if balance.value < required:
            return self._reject(report, InsufficientBalance(balance.value, required))

        assembled_result = await self._assemble(execution, signer, report)
        if not assembled_result.ok:
            return self._reject(report, assembled_result.error)
        assembled = assembled_result.value
        report.section_order = assembled.section_order
        report.estimated_out_lamports = assembled.leg2.out_amount

        # ── GUARDING ──
        report.advance(AttemptState.GUARDING)
        token_result = await self.run_stage(
            "blockhash", self.submitter.fetch_freshness_token, self.policy.blockhash_timeout_sec
        )
        report.stages.append(token_result)
        if not token_result.ok:
            return self._reject(report, token_result.error)

        finalized_result = await self.run_stage(
            "finalize",
            lambda: self.submitter.finalize(assembled, signer, token_result.value),
            self.policy.blockhash_timeout_sec,
        )
        report.stages.append(finalized_result)
        if not finalized_result.ok:
            return self._reject(report, finalized_result.error)
        finalized = finalized_result.value

        if self.simulator is not None and self.policy.simulate_before_submit:
            sim_result = await self.run_stage(
                "simulate",
                lambda: self.simulator.simulate(assembled, finalized.encoded),
                self.policy.simulation_timeout_sec,
            )
            report.stages.append(sim_result)
            if not sim_result.ok:
                return self._reject(report, sim_result.error)
            report.realized_out_lamports = sim_result.value.realized_out_lamports
            try:
                self.assembler.guard.check(
                    assembled.amount_in_lamports, sim_result.value.realized_out_lamports, stage="realized"
                )
            except ArbError as e:
                return self._reject(report, e)
        elif not self.assembler.guard.enforces_on_chain:
            Logger.warning("[GUARD] Simulation disabled; relying on the estimate and leg 2's output floor")

        # ── FINALIZING ──
        report.advance(AttemptState.FINALIZING)
        try:
            self.submitter.check_fresh(finalized.token, finalized.signature)
        except Expired as e:
            return self._reject(report, e)

        # ── SUBMITTING ──
        report.advance(AttemptState.SUBMITTING)
        submit_result = await self.run_stage(
            "submit", lambda: self.submitter.submit(finalized), self.policy.relay_timeout_sec
        )
        report.stages.append(submit_result)
        if not submit_result.ok:
            return self._reject(report, submit_result.error)
        report.signature = submit_result.value.signature

        confirm_result = await self.run_stage(
            "confirm",
            lambda: self.submitter.await_confirmation(finalized.signature, finalized.token),
            self.policy.confirmation_timeout_sec,
        )
        report.stages.append(confirm_result)
        if not confirm_result.ok:
            error = confirm_result.error
            if isinstance(error, NetworkTimeout) and error.target == "confirm":
                error = Expired(
                    str(finalized.token.blockhash),
                    self.policy.confirmation_timeout_sec,
                    self.policy.confirmation_timeout_sec,
                    finalized.signature,
                )
            return self._reject(report, error)

        confirmation = confirm_result.value
        if confirmation.status is ConfirmationStatus.FAILED:
            return self._reject(report, TransactionFailed(confirmation.signature, confirmation.error or "unknown"))

        report.advance(AttemptState.CONFIRMED)
        Logger.success(f"[PIPELINE] {opp.pair_name} confirmed: {report.signature}")
        return report

    async def execute_cached(self, pool_id: str, amount_in_sol: float, signer: Keypair) -> Optional[AttemptReport]:
        """Replay a cached opportunity by either leg's pool id; None on a cache miss."""
        cached = await self.opportunity_cache.get(pool_id)
        if cached is None:
            Logger.warning(f"[CACHE] No live cached opportunity for pool {pool_id}")
            return None
        return await self.execute(ArbitrageExecution(cached.opportunity, amount_in_sol), signer)

    # ═══════════════════════════════════════════════════════════════════════
    # WIRING
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def from_settings(cls, execution: bool = True) -> "ArbPipeline":
        """Build the full pipeline. Execution mode fails fast on missing secrets."""
        from config.settings import Settings
        from solarb.arbitrage.matcher import MatcherConfig
        from solarb.execution.assembler import AssemblerConfig
        from solarb.execution.profit_guard import GuardConfig, ProfitGuard
        from solarb.shared.infrastructure.jupiter_client import JupiterClient
        from solarb.shared.infrastructure.relay_adapter import RelayAdapter
        from solarb.shared.infrastructure.rpc_gateway import RpcGateway
        from solarb.venues.meteora import MeteoraClient
        from solarb.venues.raydium import RaydiumClient

        jupiter = JupiterClient()
        venues = {Venue.RAYDIUM: RaydiumClient(jupiter), Venue.METEORA: MeteoraClient(jupiter)}
        policy = PipelinePolicy(simulate_before_submit=Settings.SIMULATE_BEFORE_SUBMIT)
        pipeline = cls(
            venues=venues,
            matcher=OpportunityMatcher(MatcherConfig.from_settings()),
            file_store=CacheFileStore(Settings.CACHE_DIR),
            policy=policy,
        )
        if execution:
            Settings.require("RPC_URL", "WALLET_PRIVATE_KEY")
            rpc = RpcGateway(Settings.RPC_URL)
            pipeline.assembler = TransactionAssembler(venues, ProfitGuard(GuardConfig.from_settings()), AssemblerConfig.from_settings())
            pipeline.submitter = Submitter(rpc, RelayAdapter.from_settings())
            pipeline.simulator = TransactionSimulator(rpc)
        return pipeline

    async def close(self) -> None:
        closed = set()
        for client in self.venues.values():
            await client.close()
            if id(client.jupiter) not in closed:
                closed.add(id(client.jupiter))
                await client.jupiter.close()
        if self.submitter is not None:
            await self.submitter.relay.close()
            await self.submitter.rpc.close()
