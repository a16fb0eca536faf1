"""Sensitivity analysis implementation using Sobol indices.

This module provides variance-based global sensitivity analysis of the
forest growth model. Two independent base matrices are expanded into a
Sobol design, the model is run once per design row, and the variance of
each target metric is decomposed into first-order and total indices per
parameter, with percentile bootstrap confidence intervals.

Estimators, with C_p = A with column p taken from B and V the variance of
the pooled A and B outputs:

    S1_p = mean(y_B * (y_Cp - y_A)) / V
    ST_p = 1 - mean(y_A * (y_Cp - y_B)) / V

Rows whose run failed are left out of every estimate that would pair with
them and counted in the result. An index over outputs with zero pooled
variance is reported as NotComputable.

References:
    - Saltelli, A., et al. (2010). Variance based sensitivity analysis of
      model output. Computer Physics Communications, 181(2), 259-270.
    - Homma, T. and Saltelli, A. (1996). Importance measures in global
      sensitivity analysis of nonlinear models. Reliability Engineering &
      System Safety, 52(1), 1-17.

Typical usage example:

    from forest_tools import GrowthModel
    from forest_tools.sa import SensitivityAnalysis, SensitivityAnalysisConfig

    config = SensitivityAnalysisConfig.from_json("sa_config.json")
    model = GrowthModel.from_config(config)
    sa = SensitivityAnalysis(model, config)
    results = sa.run("output_directory")
"""

# Model and config
from ..model import Model, ParameterSet
from .config import SensitivityAnalysisConfig
from .design import SobolDesign
from ..sampling import ParameterSampler, SampleMatrix
from ..utils.results import (
    SobolIndexResult,
    SobolResults,
    NotComputable,
    rows_to_frame
)

# SALib
from SALib.analyze.sobol import first_order

# Logging
import logging

# Data and saving
import numpy as np
import pandas as pd
import os


VARIANCE_TOLERANCE = 1e-12
"""Pooled variance at or below this fraction of the squared mean (or of 1)
counts as zero."""

BOOTSTRAP_CHUNK = 1_000_000
"""Upper bound on resampled values held in memory at once per array."""


def total_effect(A, AB, B):
    """
    Total-effect estimator normalized by the pooled sample variance.

    ST = 1 - mean(A * (AB - B)) / Var(A ∪ B), where AB is the output of A
    with one column taken from B. Works column-wise on 2-D input.
    """
    y = np.r_[A, B]
    return 1 - np.mean(A * (AB - B), axis=0) / np.var(y, axis=0)


def _zero_variance(y_A: np.ndarray, y_B: np.ndarray) -> bool:
    pooled = np.r_[y_A, y_B]
    scale = max(1.0, float(np.mean(pooled)) ** 2)
    return float(np.var(pooled)) <= VARIANCE_TOLERANCE * scale


class SensitivityAnalysis:
    """Global sensitivity analysis using Sobol indices.

    Attributes:
        model (Model): Model evaluated once per design row. Its
            `run_parallel` must return results in input order.
        config (SensitivityAnalysisConfig): Target metrics, sample and
            bootstrap sizes, parallelism and seed.

    Example:
        ```python
        sa = SensitivityAnalysis(model, config)

        A, B = sa.sample()
        results = sa.analyze(A, B)
        results['mean_value']['K'].first_order
        ```
    """

    def __init__(
        self,
        model: Model,
        config: SensitivityAnalysisConfig,
    ):
        """Initialize the SensitivityAnalysis with model and configuration.

        Args:
            model (Model): The model instance to perform sensitivity analysis on.
            config (SensitivityAnalysisConfig): Configuration of the analysis.
        """
        self.model = model
        self.config = config

    def sample(self) -> tuple[SampleMatrix, SampleMatrix]:
        """Draw the two base matrices A and B.

        Both come from one sequential generator seeded with `config.seed`,
        so they are independent of each other and reproducible together.
        """
        logging.info("Drawing base matrices A and B.")
        sampler = ParameterSampler(seed=self.config.seed, engine=self.config.engine)
        A = sampler.sample(self.config.samples, self.config.space)
        B = sampler.sample(self.config.samples, self.config.space)
        return A, B

    def _bootstrap(
        self,
        y_A: np.ndarray,
        y_B: np.ndarray,
        y_C: np.ndarray,
        rng: np.random.Generator
    ):
        """Percentile bootstrap intervals for the first-order and total index.

        Resamples base sample positions with replacement; A, B and C_p
        values of a position always move together. Resamples with zero
        pooled variance are skipped.

        Returns:
            tuple: (first_order_conf, total_conf), each a (low, high) tuple,
                or NotComputable when no resample had usable variance.
        """
        m = y_A.size
        n_boot = self.config.n_bootstrap
        chunk = max(1, BOOTSTRAP_CHUNK // m)

        s1, st = [], []
        for start in range(0, n_boot, chunk):
            size = min(chunk, n_boot - start)
            idx = rng.integers(0, m, size=(size, m))
            a, b, c = y_A[idx].T, y_B[idx].T, y_C[idx].T  # (m, size)

            pooled = np.r_[a, b]
            scale = np.maximum(1.0, np.mean(pooled, axis=0) ** 2)
            ok = np.var(pooled, axis=0) > VARIANCE_TOLERANCE * scale
            if not np.any(ok):
                continue

            a, b, c = a[:, ok], b[:, ok], c[:, ok]
            s1.append(np.atleast_1d(first_order(a, c, b)))
            st.append(np.atleast_1d(total_effect(a, c, b)))

        if not s1:
            marker = NotComputable("no bootstrap resample with non-zero variance")
            return marker, marker

        s1 = np.concatenate(s1)
        st = np.concatenate(st)

        alpha = 1 - self.config.conf_level
        q = [100 * alpha / 2, 100 * (1 - alpha / 2)]
        s1_low, s1_high = np.percentile(s1, q)
        st_low, st_high = np.percentile(st, q)
        return (float(s1_low), float(s1_high)), (float(st_low), float(st_high))

    def _indices(
        self,
        y_A: np.ndarray,
        y_B: np.ndarray,
        y_C: np.ndarray,
        rng: np.random.Generator,
        failed_rows: int
    ) -> SobolIndexResult:
        """First-order and total index of one parameter for one metric."""
        usable = np.isfinite(y_A) & np.isfinite(y_B) & np.isfinite(y_C)
        n_used = int(usable.sum())
        if n_used < 2:
            return SobolIndexResult.not_computable(
                "fewer than two usable samples", n_used, failed_rows
            )

        y_A, y_B, y_C = y_A[usable], y_B[usable], y_C[usable]
        if _zero_variance(y_A, y_B):
            return SobolIndexResult.not_computable(
                "pooled output variance is zero", n_used, failed_rows
            )

        s1 = float(first_order(y_A, y_C, y_B))
        st = float(total_effect(y_A, y_C, y_B))
        s1_conf, st_conf = self._bootstrap(y_A, y_B, y_C, rng)

        return SobolIndexResult(
            first_order=s1,
            first_order_conf=s1_conf,
            total=st,
            total_conf=st_conf,
            n_used=n_used,
            failed_rows=failed_rows,
        )

    def _analyze(
        self,
        design: SobolDesign,
        metrics_table: pd.DataFrame
    ) -> SobolResults:
        """Compute Sobol indices for every target metric and parameter.

        Each (metric, parameter) pair bootstraps with its own generator,
        spawned from the configured seed in a fixed order, so the pairs are
        independent and the results do not depend on evaluation order.
        """
        metric_names = self.config.metric.names
        names = list(design.names)
        seeds = np.random.SeedSequence(self.config.seed).spawn(len(metric_names) * len(names))

        pos_A = design.positions("A")
        pos_B = design.positions("B")

        indices = {}
        failed_rows = {}
        for i, metric in enumerate(metric_names):
            logging.info(f"Analyzing indices for {metric}.")
            values = metrics_table[metric].to_numpy(dtype=float)
            failed = int(np.sum(~np.isfinite(values)))
            failed_rows[metric] = failed

            indices[metric] = {}
            for j, name in enumerate(names):
                rng = np.random.default_rng(seeds[i * len(names) + j])
                res = self._indices(
                    values[pos_A],
                    values[pos_B],
                    values[design.positions(name)],
                    rng,
                    failed
                )
                if not res.computable:
                    logging.warning(
                        f"Sobol indices of {name} for {metric} not computable: "
                        f"{res.first_order.reason}"
                    )
                indices[metric][name] = res

        return SobolResults(indices, metrics_table=metrics_table, failed_rows=failed_rows)

    def evaluate(self, design: SobolDesign) -> pd.DataFrame:
        """Run the model once per design row.

        Returns:
            pd.DataFrame: Metrics table indexed by design row, with one
                column per metric, 'valid', 'error', 'block' and 'sample'.
        """
        logging.info(f"Running model for {design.n_rows} design rows.")
        rows = self.model.run_parallel(
            design.rows(),
            workers=self.config.workers,
            executor=self.config.executor,
        )
        return rows_to_frame(rows).join(design.frame[["block", "sample"]])

    def analyze(self, A: SampleMatrix, B: SampleMatrix) -> SobolResults:
        """Run the design built from A and B and compute Sobol indices.

        Configuration, model settings and design are checked before any
        model run. Rows that fail are recorded in the metrics table and
        counted per metric; they never abort the batch.

        Args:
            A (SampleMatrix): First base matrix.
            B (SampleMatrix): Second, independently drawn base matrix.

        Returns:
            SobolResults: Indices keyed by metric then parameter, with the
                metrics table and failed-row counts.

        Raises:
            ValueError: If the configuration or the model settings are
                malformed.
            DesignMismatch: If A and B disagree on labels or row count.
        """
        self.config.validate()
        self.model.validate()
        design = SobolDesign.from_matrices(A, B)
        metrics_table = self.evaluate(design)
        return self._analyze(design, metrics_table)

    def run(self, out_dir: str) -> SobolResults:
        """Execute the complete sensitivity analysis workflow.

        1. Validate the configuration and run the nominal parameter set
           (distribution means)
        2. Draw base matrices A and B
        3. Run the design and compute indices
        4. Save everything to `out_dir`

        Files written: 'trajectory.csv' (nominal run), 'sample_A.csv',
        'sample_B.csv', 'metrics.csv' and 'sobol_indices.csv'.

        Args:
            out_dir (str): Output directory, created if missing.

        Returns:
            SobolResults: The computed indices.
        """
        logging.info(f"Results will be saved in: {out_dir}")
        os.makedirs(out_dir, exist_ok=True)

        self.config.validate()
        self.model.validate()
        nominal = ParameterSet.from_dict(self.config.space.means())
        logging.info(f"Running nominal parameter set {nominal.to_dict()}.")
        trajectory = self.model.run(nominal)

        A, B = self.sample()
        results = self.analyze(A, B)

        trajectory.to_csv(os.path.join(out_dir, "trajectory.csv"), index=False)
        A.frame.to_csv(os.path.join(out_dir, "sample_A.csv"), index=False)
        B.frame.to_csv(os.path.join(out_dir, "sample_B.csv"), index=False)
        results.save(out_dir)

        return results
