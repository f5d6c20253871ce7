"""Dataframe-level utilities for batch consensus runs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from .errors import AllSamplesFailed
from .parsing import normalize_answer
from .solver import ReasoningConsensusEngine

logger = logging.getLogger(__name__)

RESULT_COLUMNS = ["id", "answer", "vote_count", "total_samples", "consensus_percentage"]


@dataclass(frozen=True)
class ReferenceScore:
    solved: int
    total: int

    @property
    def accuracy(self) -> float:
        return self.solved / self.total if self.total else 0.0


def run_inference(
    engine: ReasoningConsensusEngine,
    problems_df: pd.DataFrame,
    *,
    id_col: str = "id",
    problem_col: str = "problem",
    sample_count: int | None = None,
    verbose: bool = True,
) -> tuple[pd.DataFrame, list[dict[str, Any]]]:
    """Run the engine across a dataframe of problems."""

    required = {id_col, problem_col}
    missing = required - set(problems_df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    rows: list[dict[str, Any]] = []
    debug_rows: list[dict[str, Any]] = []

    total = len(problems_df)
    for idx, row in enumerate(problems_df.itertuples(index=False), start=1):
        problem_id = getattr(row, id_col)
        problem_text = str(getattr(row, problem_col))

        try:
            solved = engine.solve(problem_text, sample_count, problem_id=problem_id)
        except AllSamplesFailed as exc:
            logger.error("problem %s: %s", problem_id, exc)
            rows.append(
                {
                    "id": problem_id,
                    "answer": None,
                    "vote_count": 0,
                    "total_samples": len(exc.errors),
                    "consensus_percentage": 0.0,
                }
            )
            debug_rows.append({"id": problem_id, "error": str(exc), "samples": []})
            if verbose:
                print(f"[{idx:02d}/{total:02d}] id={problem_id} failed: all samples errored")
            continue

        result = solved.result
        rows.append(
            {
                "id": problem_id,
                "answer": result.winning_answer,
                "vote_count": result.vote_count,
                "total_samples": result.total_samples,
                "consensus_percentage": result.consensus_percentage,
            }
        )
        debug_rows.append(
            {
                "id": problem_id,
                "summary": solved.debug_summary,
                "distribution": dict(result.distribution),
                "samples": [
                    {
                        "index": s.index,
                        "answer": s.extracted_answer,
                        "raw_answer": s.raw_answer,
                        "generation_error": s.generation_error,
                        "text": s.raw_text,
                    }
                    for s in solved.samples
                ],
            }
        )

        if verbose:
            print(
                f"[{idx:02d}/{total:02d}] id={problem_id} answer={result.winning_answer} "
                f"consensus={result.consensus_percentage:.0f}%"
            )

    return pd.DataFrame(rows, columns=RESULT_COLUMNS), debug_rows


def score_against_reference(
    results_df: pd.DataFrame,
    reference_df: pd.DataFrame,
    *,
    id_col: str = "id",
    answer_col: str = "answer",
) -> tuple[pd.DataFrame, ReferenceScore]:
    """Join predictions with known answers, comparing normalized values."""

    truth = reference_df[[id_col, answer_col]].rename(columns={id_col: "id", answer_col: "answer_true"})
    merged = results_df.merge(truth, on="id", how="left")
    expected = merged["answer_true"].map(lambda v: None if pd.isna(v) else normalize_answer(str(v)))
    merged["correct"] = [
        pred is not None and pred == true for pred, true in zip(merged["answer"], expected)
    ]

    return merged, ReferenceScore(solved=int(merged["correct"].sum()), total=int(len(merged)))


def save_results(results_df: pd.DataFrame, output_path: str | Path) -> Path:
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    results_df.to_csv(output, index=False)
    return output


def save_debug(debug_rows: list[dict[str, Any]], output_path: str | Path) -> Path:
    """Persist full sample traces for error analysis."""

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(debug_rows, indent=2, default=str), encoding="utf-8")
    return output
