"""Command-line interface for self-consistency experiments."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

import pandas as pd

from .client import OpenAICompatChatClient
from .errors import AllSamplesFailed, ConsensusError
from .pipeline import run_inference, save_debug, save_results, score_against_reference
from .solver import ReasoningConsensusEngine, SolveResult, SolverConfig

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"


def _load_dotenv_if_present() -> None:
    try:
        from dotenv import load_dotenv
    except ImportError:
        return

    load_dotenv(override=False)


def _add_solver_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--model", default=None, help=f"Chat model id (default: $CONSENSUS_MODEL or {DEFAULT_MODEL}).")
    parser.add_argument("--base-url", default=None, help="OpenAI-compatible endpoint (default: $CONSENSUS_BASE_URL).")
    parser.add_argument("--api-key", default=None, help="Bearer token (default: $CONSENSUS_API_KEY or $OPENAI_API_KEY).")

    parser.add_argument("--samples", type=int, default=5, help="Independent reasoning paths per problem.")
    parser.add_argument("--temperature", type=float, default=0.7)
    parser.add_argument("--max-tokens", type=int, default=500)
    parser.add_argument(
        "--parallel-workers",
        type=int,
        default=0,
        help="Concurrent generation calls per problem (0 = one per sample).",
    )
    parser.add_argument(
        "--sample-retries",
        type=int,
        default=0,
        help="Extra attempts for a sample whose call failed transiently (timeouts, 429, 5xx).",
    )
    parser.add_argument("--retry-backoff-sec", type=float, default=0.5, help="Linear backoff between a sample's attempts.")
    parser.add_argument(
        "--deadline-sec",
        type=float,
        default=0,
        help=(
            "Wall-clock budget per problem; unfinished samples count as failed (0 disables). "
            "Calls already in flight cannot be stopped, so the process may wait for them "
            "(up to --request-timeout) before exiting."
        ),
    )

    parser.add_argument("--request-timeout", type=int, default=120)
    parser.add_argument(
        "--log-level",
        default=os.getenv("CONSENSUS_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )


def _build_engine_from_args(args: argparse.Namespace) -> ReasoningConsensusEngine:
    model = args.model or os.getenv("CONSENSUS_MODEL") or DEFAULT_MODEL
    base_url = args.base_url or os.getenv("CONSENSUS_BASE_URL") or DEFAULT_BASE_URL
    api_key = args.api_key or os.getenv("CONSENSUS_API_KEY") or os.getenv("OPENAI_API_KEY")

    client = OpenAICompatChatClient(
        base_url=base_url,
        model=model,
        api_key=api_key,
        timeout_sec=args.request_timeout,
    )

    config = SolverConfig(
        sample_count=args.samples,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
        parallel_workers=max(0, args.parallel_workers),
        sample_retries=max(0, args.sample_retries),
        retry_backoff_sec=max(0.0, args.retry_backoff_sec),
        deadline_sec=max(0.0, args.deadline_sec),
    )
    return ReasoningConsensusEngine(client, config=config)


def _validate_input_path(input_csv: str) -> Path:
    path = Path(input_csv)
    if not path.exists():
        raise FileNotFoundError(f"Input CSV not found: {path}")
    return path


def render_solve_result(solved: SolveResult, *, show_paths: int = 2, preview_chars: int = 200) -> str:
    """Human-readable report: sample previews, vote distribution, final answer."""

    lines: list[str] = []
    for sample in solved.samples[: max(0, show_paths)]:
        lines.append(f"--- Path {sample.index + 1} ---")
        if sample.failed:
            lines.append(f"(generation failed: {sample.generation_error})")
        else:
            text = sample.raw_text
            lines.append(text[:preview_chars] + ("..." if len(text) > preview_chars else ""))
        lines.append(f"Extracted Answer: {sample.extracted_answer}")
        lines.append("")

    result = solved.result
    lines.append("Vote Distribution:")
    if not result.distribution:
        lines.append("  (no parseable answers)")
    for answer, votes in result.top_votes(len(result.distribution)):
        marker = " ✓" if answer == result.winning_answer else ""
        lines.append(f"  - {answer}: {votes} vote(s){marker}")

    lines.append("")
    lines.append(
        f"Final Answer: {result.winning_answer} "
        f"(with {result.consensus_percentage:.0f}% consensus, "
        f"{result.vote_count}/{result.total_samples} samples)"
    )
    return "\n".join(lines)


def cmd_solve(args: argparse.Namespace) -> None:
    engine = _build_engine_from_args(args)
    solved = engine.solve(args.problem)

    if args.json:
        payload = {
            "result": solved.result.as_dict(),
            "samples": [
                {
                    "index": s.index,
                    "answer": s.extracted_answer,
                    "generation_error": s.generation_error,
                    "text": s.raw_text,
                }
                for s in solved.samples
            ],
        }
        print(json.dumps(payload, indent=2))
        return

    print(render_solve_result(solved, show_paths=args.show_paths))


def cmd_batch(args: argparse.Namespace) -> None:
    engine = _build_engine_from_args(args)

    input_path = _validate_input_path(args.input_csv)
    problems = pd.read_csv(input_path)
    if args.limit and args.limit > 0:
        problems = problems.head(args.limit)

    results_df, debug_rows = run_inference(
        engine,
        problems,
        id_col=args.id_col,
        problem_col=args.problem_col,
        verbose=not args.quiet,
    )

    out = save_results(results_df, args.output_csv)
    print(f"Saved results: {out}")

    if args.debug_json:
        debug_out = save_debug(debug_rows, args.debug_json)
        print(f"Saved debug traces: {debug_out}")


def cmd_benchmark_reference(args: argparse.Namespace) -> None:
    engine = _build_engine_from_args(args)
    reference_path = _validate_input_path(args.reference_csv)

    reference_df = pd.read_csv(reference_path)
    required = {args.id_col, args.problem_col, args.answer_col}
    missing = required - set(reference_df.columns)
    if missing:
        raise ValueError(f"Reference CSV missing columns: {sorted(missing)}")

    if args.limit and args.limit > 0:
        reference_df = reference_df.head(args.limit)

    results_df, debug_rows = run_inference(
        engine,
        reference_df,
        id_col=args.id_col,
        problem_col=args.problem_col,
        verbose=not args.quiet,
    )
    merged, score = score_against_reference(
        results_df,
        reference_df,
        id_col=args.id_col,
        answer_col=args.answer_col,
    )
    print(f"Reference benchmark: {score.solved}/{score.total} solved ({score.accuracy:.1%})")

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    pred_path = output_dir / "reference_predictions.csv"
    debug_path = output_dir / "reference_debug.json"
    summary_path = output_dir / "reference_summary.json"

    merged.to_csv(pred_path, index=False)
    save_debug(debug_rows, debug_path)
    summary = {
        "solved": score.solved,
        "total": score.total,
        "accuracy": score.accuracy,
        "samples": args.samples,
        "temperature": args.temperature,
        "model": engine.client.model,
    }
    summary_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")

    print(f"Saved predictions: {pred_path}")
    print(f"Saved debug traces: {debug_path}")
    print(f"Saved summary: {summary_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Self-consistency (majority vote) reasoning CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    solve = sub.add_parser("solve", help="Sample reasoning paths for one problem and vote")
    solve.add_argument("--problem", required=True, help="Problem statement text")
    solve.add_argument("--show-paths", type=int, default=2, help="Number of sample previews to print")
    solve.add_argument("--json", action="store_true", help="Print the full result as JSON")
    _add_solver_args(solve)
    solve.set_defaults(func=cmd_solve)

    batch = sub.add_parser("batch", help="Solve every problem in a CSV")
    batch.add_argument("--input-csv", required=True, help="CSV with columns id,problem")
    batch.add_argument("--output-csv", default="artifacts/consensus_results.csv")
    batch.add_argument("--debug-json", default="artifacts/debug_traces.json")
    batch.add_argument("--id-col", default="id")
    batch.add_argument("--problem-col", default="problem")
    batch.add_argument("--limit", type=int, default=0)
    _add_solver_args(batch)
    batch.add_argument("--quiet", action="store_true")
    batch.set_defaults(func=cmd_batch)

    ref = sub.add_parser("benchmark-reference", help="Run the engine on a labeled reference CSV")
    ref.add_argument("--reference-csv", required=True)
    ref.add_argument("--output-dir", default="artifacts/reference_benchmark")
    ref.add_argument("--id-col", default="id")
    ref.add_argument("--problem-col", default="problem")
    ref.add_argument("--answer-col", default="answer")
    ref.add_argument("--limit", type=int, default=0)
    _add_solver_args(ref)
    ref.add_argument("--quiet", action="store_true")
    ref.set_defaults(func=cmd_benchmark_reference)

    return parser


def main(argv: list[str] | None = None) -> int:
    _load_dotenv_if_present()
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args)
    except AllSamplesFailed as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except ConsensusError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
