#!/usr/bin/env python3
"""
Order Processor Load Runner

Simulates concurrent order processors driving the application's web
client. Every virtual user is a thread with its own session, random
source and pacing, repeating one scenario until its iterations or the
run duration are used up.

Usage:
    python load_runner.py --settings loadtest.yaml
    python load_runner.py --settings loadtest.yaml --scenario create-and-post-sales-order --users 10 --iterations 5
    python load_runner.py --settings loadtest.yaml --duration 600 --seed 42
"""

import argparse
import logging
import sys
import threading
import time
from datetime import datetime, timezone
from typing import Optional

from client.browser_session import BrowserSessionFactory
from persistence.run_results import JSONLResultStore, ResultStore
from scenario_errors import AuthenticationFailure
from scenario_models import RunSummary, ScenarioOutcome, SpanRecord
from scenario_runner import ScenarioRunner
from scenarios import SCENARIOS, OrderProcessorScenarios
from session_context import Identity, SessionFactory, SessionRegistry
from settings_loader import Settings, load_settings, validate_settings
from timing import Pacer, SafeRandom, SpanRecorder

logger = logging.getLogger(__name__)

DEFAULT_SCENARIO = "create-and-post-sales-order"


class LoadRun:
    """
    One load-test run: a session registry, a result store and a pool of
    virtual user threads.
    """

    def __init__(self, settings: Settings, scenario: str = DEFAULT_SCENARIO,
                 factory: Optional[SessionFactory] = None,
                 store: Optional[ResultStore] = None,
                 sleep=time.sleep):
        """
        Initialize the run.

        Args:
            settings: Load-test settings
            scenario: CLI name of the scenario every virtual user repeats
            factory: Session factory (None = browser sessions)
            store: Result store (None = JSONL files under settings.output_dir)
            sleep: Sleep function used for pacing
        """
        if scenario not in SCENARIOS:
            raise ValueError(f"Unknown scenario: {scenario}")

        self.settings = settings
        self.scenario = scenario
        self.registry = SessionRegistry(factory or BrowserSessionFactory(settings))
        self.store = store if store is not None else JSONLResultStore(settings.output_dir)
        self.sleep = sleep
        self.rng = SafeRandom(settings.load.seed)
        self.stop_event = threading.Event()

        self.summary = RunSummary(scenario=scenario, users=settings.load.users)
        self._summary_lock = threading.Lock()

    def _record_outcome(self, outcome: ScenarioOutcome) -> None:
        self.store.add_outcome(outcome)
        with self._summary_lock:
            self.summary.add_outcome(outcome)

    def _record_span(self, span: SpanRecord) -> None:
        self.store.add_span(span)
        with self._summary_lock:
            self.summary.add_span(span)

    def identity_for(self, slot: int) -> Identity:
        auth = self.settings.auth
        return Identity(
            user_name=auth.user_name,
            password=auth.password,
            windows_auth=auth.windows,
            slot=slot,
        )

    def _should_continue(self, iteration: int, deadline: Optional[float]) -> bool:
        if self.stop_event.is_set():
            return False
        iterations = self.settings.load.iterations
        if iterations is not None and iteration >= iterations:
            return False
        if deadline is not None and time.monotonic() >= deadline:
            return False
        return True

    def virtual_user(self, slot: int, rng: SafeRandom, deadline: Optional[float]) -> None:
        """Body of one virtual user thread."""
        identity = self.identity_for(slot)
        timing = self.settings.timing
        scenarios = OrderProcessorScenarios(
            rng=rng,
            pacer=Pacer(rng, timing.think_delay, timing.entry_delay,
                        timing.max_delay, sleep=self.sleep),
            spans=SpanRecorder(sink=self._record_span),
            pages=self.settings.pages,
        )
        scenario = scenarios.get(self.scenario)
        runner = ScenarioRunner(reporter=self._record_outcome)

        try:
            session = self.registry.acquire(identity)
        except AuthenticationFailure as e:
            logger.critical(f"Virtual user {identity} cannot log in: {e}")
            return
        except Exception as e:
            logger.error(f"Virtual user {identity} could not open a session: {e}")
            return

        try:
            iteration = 0
            while self._should_continue(iteration, deadline):
                runner.run(session, scenario, self.scenario)
                iteration += 1
            logger.info(f"Virtual user {identity} finished after {iteration} iteration(s)")
        finally:
            self.registry.release(identity)

    def run(self) -> RunSummary:
        """Start all virtual users, wait for them and return the summary."""
        load = self.settings.load
        deadline = time.monotonic() + load.duration if load.duration else None

        logger.info(f"Starting load run: {self.scenario}")
        logger.info(f"Users: {load.users}, Iterations: {load.iterations}, "
                    f"Duration: {load.duration}, Seed: {load.seed}")

        threads = []
        for slot in range(load.users):
            thread = threading.Thread(
                target=self.virtual_user,
                args=(slot, self.rng.spawn(), deadline),
                name=f"vu-{slot}",
                daemon=True,
            )
            threads.append(thread)
            thread.start()

        try:
            for thread in threads:
                while thread.is_alive():
                    thread.join(timeout=0.5)
        except KeyboardInterrupt:
            logger.warning("Interrupted - stopping virtual users after their current iteration")
            self.stop_event.set()
            for thread in threads:
                thread.join()
        finally:
            self.registry.close_all()

        self.summary.finished_at = datetime.now(timezone.utc).isoformat()
        self.store.save(self.summary)
        self._log_summary()
        return self.summary

    def stop(self) -> None:
        self.stop_event.set()

    def _log_summary(self) -> None:
        logger.info("=" * 60)
        logger.info("Load run complete!")
        for status, count in self.summary.counts.items():
            logger.info(f"{status.value.capitalize()}: {count}")
        for name, stats in self.summary.spans.items():
            logger.info(f"Span {name}: {stats.count} x, mean {stats.mean_seconds:.3f}s, "
                        f"max {stats.max_seconds:.3f}s")
        logger.info("=" * 60)


def main():
    parser = argparse.ArgumentParser(description='Order processor load runner')

    parser.add_argument('--settings', required=True, help='Settings YAML file')
    parser.add_argument('--scenario', choices=sorted(SCENARIOS), default=DEFAULT_SCENARIO,
                        help='Scenario every virtual user repeats')

    # Load shape overrides
    parser.add_argument('--users', type=int, help='Number of virtual users')
    parser.add_argument('--iterations', type=int, help='Iterations per virtual user')
    parser.add_argument('--duration', type=float, help='Run duration in seconds')
    parser.add_argument('--seed', type=int, help='Seed for reproducible random data')

    parser.add_argument('--output-dir', help='Directory for outcomes, spans and summary')
    parser.add_argument('--visible', action='store_true', help='Run browsers in visible mode')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        settings = load_settings(args.settings)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Invalid settings: {e}")
        sys.exit(1)

    if args.users is not None:
        settings.load.users = args.users
    if args.duration is not None:
        settings.load.duration = args.duration
        settings.load.iterations = args.iterations
    elif args.iterations is not None:
        settings.load.iterations = args.iterations
    if args.seed is not None:
        settings.load.seed = args.seed
    if args.output_dir:
        settings.output_dir = args.output_dir
    if args.visible:
        settings.headless = False

    for warning in validate_settings(settings):
        logger.warning(f"  - {warning}")

    summary = LoadRun(settings, args.scenario).run()
    if summary.total == 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
