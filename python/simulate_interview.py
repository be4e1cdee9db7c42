#!/usr/bin/env python3
"""
Synthetic Interview Simulator.

Runs one complete interview (guard checks, resume intake, five timed
answers, transcript polling, AI evaluation, persistence) against scripted
collaborators with accelerated timing, then prints the persisted record.

Usage:
    uv run python simulate_interview.py

    # With custom options:
    uv run python simulate_interview.py --tab-switches 1 3 --fail-transcription 3
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Final, Optional

from mock_interview import Done, Finalizing, GuardError, InterviewSettings
from simulation_engine import (
    SIMULATION_SETTINGS,
    InMemoryStorage,
    ScriptedTranscription,
    SimulatedCollaborators,
    SimulationEngine,
)

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS: Final[int] = 0
EXIT_GUARD_FAILED: Final[int] = 1
EXIT_SETUP_FAILED: Final[int] = 2
EXIT_SUBMISSION_FAILED: Final[int] = 3
EXIT_INTERRUPTED: Final[int] = 130  # Standard SIGINT exit code


# =============================================================================
# Simulation
# =============================================================================

async def run_simulation(
    settings: InterviewSettings,
    answer_ticks: Optional[int],
    tab_switch_questions: list[int],
    fail_transcription: list[int],
) -> int:
    """
    Run the simulated interview.

    Args:
        settings: Timing settings.
        answer_ticks: Ticks before each answer is stopped (None = let it expire).
        tab_switch_questions: 1-based questions during which to switch tabs.
        fail_transcription: 1-based questions whose transcription request fails.

    Returns:
        Exit code.
    """
    collaborators = SimulatedCollaborators(
        storage=InMemoryStorage(),
        transcription=ScriptedTranscription(
            fail_request_for=[f"blob://{n}" for n in fail_transcription],
        ),
    )
    engine = SimulationEngine(
        collaborators=collaborators,
        settings=settings,
        answer_ticks=answer_ticks,
        tab_switch_questions=[n - 1 for n in tab_switch_questions],
    )

    try:
        state = await engine.run()
    except GuardError as exc:
        logger.error("Interview not started: %s", exc)
        return EXIT_GUARD_FAILED

    if isinstance(state, Done):
        logger.info("Interview saved as %s", state.record_id)
        print(json.dumps(state.record.to_document(), indent=2))
        return EXIT_SUCCESS

    if isinstance(state, Finalizing):
        logger.error("Submission failed: %s", state.error_message)
        return EXIT_SUBMISSION_FAILED

    logger.error("Interview setup failed in step %s", state.step.value)
    return EXIT_SETUP_FAILED


def main(
    answer_ticks: Optional[int] = 3,
    tab_switch_questions: Optional[list[int]] = None,
    fail_transcription: Optional[list[int]] = None,
    answer_seconds: Optional[int] = None,
) -> int:
    """
    Main entry point for the simulator.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    settings = SIMULATION_SETTINGS
    if answer_seconds is not None:
        settings = settings.with_overrides(answer_seconds=answer_seconds)

    logger.info("=" * 60)
    logger.info("Mock Interview Simulator")
    logger.info("=" * 60)
    logger.info("Questions: %d", settings.question_count)
    logger.info("Answer budget: %d ticks", settings.answer_seconds)
    logger.info("")

    try:
        return asyncio.run(
            run_simulation(
                settings=settings,
                answer_ticks=answer_ticks,
                tab_switch_questions=tab_switch_questions or [],
                fail_transcription=fail_transcription or [],
            )
        )
    except KeyboardInterrupt:
        logger.info("\nSimulation interrupted")
        return EXIT_INTERRUPTED


def cli() -> None:
    """
    Command-line interface entry point with argument parsing.
    """
    import argparse

    parser = argparse.ArgumentParser(
        description="Simulate a complete interview against scripted collaborators.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run with defaults
    uv run python simulate_interview.py

    # Two tab switches and a failed transcription request on question 3
    uv run python simulate_interview.py --tab-switches 2 4 --fail-transcription 3

    # Let every answer run until the clock expires
    uv run python simulate_interview.py --no-stop --answer-seconds 5
        """,
    )

    parser.add_argument(
        "--answer-ticks",
        type=int,
        default=3,
        help="Recording ticks before the candidate presses stop (default: 3)",
    )
    parser.add_argument(
        "--no-stop",
        action="store_true",
        help="Never press stop; every answer runs until the clock expires",
    )
    parser.add_argument(
        "--answer-seconds",
        type=int,
        default=None,
        help="Override the answer budget in ticks",
    )
    parser.add_argument(
        "--tab-switches",
        type=int,
        nargs="*",
        default=[],
        metavar="QUESTION",
        help="Questions (1-based) during which the candidate switches tabs",
    )
    parser.add_argument(
        "--fail-transcription",
        type=int,
        nargs="*",
        default=[],
        metavar="QUESTION",
        help="Questions (1-based) whose transcription request fails",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    exit_code = main(
        answer_ticks=None if args.no_stop else args.answer_ticks,
        tab_switch_questions=args.tab_switches,
        fail_transcription=args.fail_transcription,
        answer_seconds=args.answer_seconds,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
