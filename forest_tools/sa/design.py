"""Sobol experiment design built from two base sample matrices.

The design stacks matrix A, matrix B and one block C_p per parameter p,
where C_p is A with the column of p taken from B. Every row carries its
block label and base sample index, so the rows that the estimator pairs up
are found by label, never by assumed offsets.

Typical usage example:

    from forest_tools.sa import SobolDesign

    design = SobolDesign.from_matrices(A, B)
    design.n_rows                  # N * (2 + P)
    rows = design.rows()           # name-keyed dicts, in design order
    y_A = values[design.positions("A")]
"""

from forest_tools.model import PARAMETER_NAMES
from forest_tools.sampling import SampleMatrix
from forest_tools.utils.errors import DesignMismatch

import numpy as np
import pandas as pd
from dataclasses import dataclass


@dataclass(frozen=True)
class SobolDesign:
    """Stacked A, B and C_p blocks.

    Attributes:
        frame (pd.DataFrame): One row per model run with the parameter
            columns plus 'block' ('A', 'B' or the swapped parameter name)
            and 'sample' (index of the base row).
        n (int): Rows per block (N).
        names (tuple[str]): Parameter names in canonical order.
    """

    frame: pd.DataFrame
    n: int
    names: tuple[str, ...] = PARAMETER_NAMES

    @classmethod
    def from_matrices(cls, A: SampleMatrix, B: SampleMatrix) -> "SobolDesign":
        """Build the design from two base matrices.

        Args:
            A (SampleMatrix): First base matrix.
            B (SampleMatrix): Second, independently drawn base matrix.

        Returns:
            SobolDesign: N * (2 + P) rows.

        Raises:
            DesignMismatch: If the matrices disagree on labels or row count,
                or the assembled design fails its consistency checks.
        """
        if A.names != list(PARAMETER_NAMES) or B.names != list(PARAMETER_NAMES):
            raise DesignMismatch(
                f"Matrix columns {A.names} / {B.names} do not match {list(PARAMETER_NAMES)}"
            )
        if A.n != B.n:
            raise DesignMismatch(f"A has {A.n} rows but B has {B.n}")
        if A.n == 0:
            raise DesignMismatch("Base matrices are empty")

        n = A.n
        sample = np.arange(n)
        blocks = [
            A.frame.assign(block="A", sample=sample),
            B.frame.assign(block="B", sample=sample),
        ]
        for name in PARAMETER_NAMES:
            C = A.frame.copy()
            C[name] = B.frame[name].to_numpy()
            blocks.append(C.assign(block=name, sample=sample))

        frame = pd.concat(blocks, ignore_index=True)
        design = cls(frame=frame, n=n)
        design.check(A, B)
        return design

    @property
    def n_rows(self) -> int:
        return len(self.frame)

    @property
    def labels(self) -> list[str]:
        """Block labels in design order."""
        return ["A", "B", *self.names]

    def positions(self, label: str) -> np.ndarray:
        """Design row positions of one block, ordered by base sample index."""
        block = self.frame[self.frame["block"] == label]
        if len(block) != self.n:
            raise DesignMismatch(f"Block {label!r} has {len(block)} rows, expected {self.n}")
        return block.sort_values("sample").index.to_numpy()

    def block(self, label: str) -> pd.DataFrame:
        """Parameter values of one block, indexed by base sample."""
        return self.frame.loc[self.positions(label), list(self.names)].reset_index(drop=True)

    def rows(self) -> list[dict[str, float]]:
        """Parameter rows keyed by name, in design order."""
        return self.frame[list(self.names)].to_dict(orient="records")

    def check(self, A: SampleMatrix, B: SampleMatrix):
        """Verify shape and column identity of the design against A and B.

        Every C_p row must equal the A row in all columns except p and the
        B row in column p.

        Raises:
            DesignMismatch: On any violation.
        """
        expected = self.n * (2 + len(self.names))
        if self.n_rows != expected:
            raise DesignMismatch(f"Design has {self.n_rows} rows, expected {expected}")

        a = A.frame.to_numpy()
        b = B.frame.to_numpy()
        if not np.array_equal(self.block("A").to_numpy(), a, equal_nan=True):
            raise DesignMismatch("Block 'A' does not reproduce matrix A")
        if not np.array_equal(self.block("B").to_numpy(), b, equal_nan=True):
            raise DesignMismatch("Block 'B' does not reproduce matrix B")

        for p, name in enumerate(self.names):
            c = self.block(name).to_numpy()
            others = [j for j in range(len(self.names)) if j != p]
            if not (np.array_equal(c[:, others], a[:, others], equal_nan=True)
                    and np.array_equal(c[:, p], b[:, p], equal_nan=True)):
                raise DesignMismatch(f"Block {name!r} is not A with column {name!r} from B")
