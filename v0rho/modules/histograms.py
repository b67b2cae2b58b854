"""
Histogram registry

Fixed-binning 1-D and 2-D count histograms keyed by a path-like name
(e.g. "system/2pi/cut/0n0n/unlike-sign/hM"). The registry is the only
mutable output of the tasks: selections fill counters in it, the tasks fill
physics distributions, and the whole set is written to a ROOT file with
uproot at the end of the run.

Binning follows the ROOT convention: bin i covers [edge_i, edge_i+1), values
below the first edge go to the underflow bin and values at or above the
last edge go to the overflow bin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Sequence

import numpy as np
import uproot
from uproot.writing.identify import (
    to_TAxis,
    to_TH1x,
    to_TH2x,
    to_THashList,
    to_TObjString,
)

from .exceptions import ConfigurationError, HistogramError

# leading value of a configurable-axis list that announces explicit edges
VARIABLE_WIDTH = 0


@dataclass(frozen=True)
class Axis:
    """Bin edges of one histogram axis."""

    edges: tuple[float, ...]
    title: str = ""

    def __post_init__(self) -> None:
        if len(self.edges) < 2:
            raise ConfigurationError(f"Axis '{self.title}' needs at least two edges")
        if any(b <= a for a, b in zip(self.edges, self.edges[1:])):
            raise ConfigurationError(f"Axis '{self.title}' edges must be strictly increasing")

    @classmethod
    def uniform(cls, nbins: int, low: float, high: float, title: str = "") -> Axis:
        """Equal-width binning of [low, high) into nbins bins."""
        if nbins < 1 or high <= low:
            raise ConfigurationError(
                f"Invalid uniform axis '{title}': nbins={nbins}, range=({low}, {high})"
            )
        edges = np.linspace(low, high, nbins + 1)
        return cls(tuple(float(e) for e in edges), title)

    @classmethod
    def from_spec(cls, spec: Sequence[float], title: str = "") -> Axis:
        """
        Build an axis from a configurable-axis list.

        `[nbins, low, high]` gives uniform binning; `[0, e0, e1, ...]` gives
        the explicit edges e0, e1, ...
        """
        values = list(spec)
        if len(values) >= 3 and values[0] == VARIABLE_WIDTH:
            return cls(tuple(float(e) for e in values[1:]), title)
        if len(values) == 3:
            nbins, low, high = values
            if isinstance(nbins, float) and not nbins.is_integer():
                raise ConfigurationError(f"Axis '{title}': bin count must be an integer")
            return cls.uniform(int(nbins), float(low), float(high), title)
        raise ConfigurationError(
            f"Axis '{title}': expected [nbins, low, high] or [0, edges...], got {values}"
        )

    @property
    def nbins(self) -> int:
        return len(self.edges) - 1

    def index(self, value: float) -> int:
        """Storage index of a value: 0 underflow, 1..nbins in range, nbins+1 overflow."""
        return int(np.searchsorted(self.edges, value, side="right"))


@dataclass
class Histogram:
    """Weighted count histogram with under/overflow bins on every axis."""

    name: str
    title: str
    axes: tuple[Axis, ...]
    counts: np.ndarray = field(init=False, repr=False)
    sumw2: np.ndarray = field(init=False, repr=False)
    entries: int = field(init=False, default=0)
    bin_labels: dict[int, tuple[str, ...]] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        shape = tuple(axis.nbins + 2 for axis in self.axes)
        self.counts = np.zeros(shape, dtype=np.float64)
        self.sumw2 = np.zeros(shape, dtype=np.float64)

    @property
    def ndim(self) -> int:
        return len(self.axes)

    def _locate(self, values: Sequence[float]) -> tuple[int, ...]:
        if len(values) != self.ndim:
            raise HistogramError(
                f"Histogram '{self.name}' is {self.ndim}-D but was filled with "
                f"{len(values)} value(s)"
            )
        return tuple(axis.index(v) for axis, v in zip(self.axes, values))

    def fill(self, *values: float, weight: float = 1.0) -> None:
        index = self._locate(values)
        self.counts[index] += weight
        self.sumw2[index] += weight * weight
        self.entries += 1

    def bin_content(self, *values: float) -> float:
        """Content of the bin containing the given coordinates."""
        return float(self.counts[self._locate(values)])

    def values(self) -> np.ndarray:
        """In-range bin contents (flow bins stripped)."""
        return self.counts[tuple(slice(1, -1) for _ in self.axes)]

    def sum(self, flow: bool = False) -> float:
        return float(self.counts.sum() if flow else self.values().sum())

    def to_numpy(self) -> tuple[np.ndarray, ...]:
        """(values, edges...) tuple in the layout of numpy.histogram / histogram2d."""
        return (self.values(), *(np.asarray(axis.edges) for axis in self.axes))

    def _root_axis(self, axis_index: int, name: str):
        axis = self.axes[axis_index]
        labels = self.bin_labels.get(axis_index)
        root_labels = None
        if labels:
            root_labels = to_THashList([to_TObjString(label) for label in labels])
            # TAxis::SetBinLabel keys each label by its bin number
            for i, label in enumerate(root_labels):
                label._bases[0]._members["@fUniqueID"] = i + 1
        return to_TAxis(
            fName=name,
            fTitle=axis.title,
            fNbins=axis.nbins,
            fXmin=axis.edges[0],
            fXmax=axis.edges[-1],
            fXbins=np.asarray(axis.edges, dtype=np.float64),
            fLabels=root_labels,
        )

    def to_root(self):
        """
        Build a TH1D / TH2D with flow bins, entries and bin labels for uproot.

        The running sums (fTsumw, fTsumwx, ...) are taken over in-range bins at
        the bin centres, the same approximation uproot uses for numpy input.
        """
        centres = [
            0.5 * (np.asarray(axis.edges[:-1]) + np.asarray(axis.edges[1:]))
            for axis in self.axes
        ]
        inner = self.values()
        inner_sumw2 = self.sumw2[tuple(slice(1, -1) for _ in self.axes)]
        # ROOT stores the x index fastest
        data = self.counts.T.reshape(-1)
        sumw2 = self.sumw2.T.reshape(-1)

        if self.ndim == 1:
            x = centres[0]
            return to_TH1x(
                fName=None,
                fTitle=self.title,
                data=data,
                fEntries=float(self.entries),
                fTsumw=float(inner.sum()),
                fTsumw2=float(inner_sumw2.sum()),
                fTsumwx=float((inner * x).sum()),
                fTsumwx2=float((inner * x**2).sum()),
                fSumw2=sumw2,
                fXaxis=self._root_axis(0, "xaxis"),
            )

        x, y = np.meshgrid(centres[0], centres[1], indexing="ij")
        return to_TH2x(
            fName=None,
            fTitle=self.title,
            data=data,
            fEntries=float(self.entries),
            fTsumw=float(inner.sum()),
            fTsumw2=float(inner_sumw2.sum()),
            fTsumwx=float((inner * x).sum()),
            fTsumwx2=float((inner * x**2).sum()),
            fTsumwy=float((inner * y).sum()),
            fTsumwy2=float((inner * y**2).sum()),
            fTsumwxy=float((inner * x * y).sum()),
            fSumw2=sumw2,
            fXaxis=self._root_axis(0, "xaxis"),
            fYaxis=self._root_axis(1, "yaxis"),
        )


class HistogramRegistry:
    """
    Named collection of histograms.

    Attributes:
        name: Registry name, used as the default output label
        logger: Logger instance for this class
    """

    def __init__(self, name: str = "registry") -> None:
        self.name = name
        self.logger: logging.Logger = logging.getLogger(f"V0Rho.Histograms.{name}")
        self._histograms: dict[str, Histogram] = {}

    def add(self, name: str, title: str, axes: Sequence[Axis]) -> Histogram:
        """
        Register a new 1-D or 2-D histogram.

        Raises:
            HistogramError: If the name is taken or the dimension unsupported
        """
        if name in self._histograms:
            raise HistogramError(f"Histogram '{name}' is already registered")
        if len(axes) not in (1, 2):
            raise HistogramError(
                f"Histogram '{name}': only 1-D and 2-D histograms are supported, "
                f"got {len(axes)} axes"
            )
        hist = Histogram(name, title, tuple(axes))
        self._histograms[name] = hist
        return hist

    def get(self, name: str) -> Histogram:
        try:
            return self._histograms[name]
        except KeyError as exc:
            raise HistogramError(f"Histogram '{name}' is not registered") from exc

    def fill(self, name: str, *values: float, weight: float = 1.0) -> None:
        self.get(name).fill(*values, weight=weight)

    def set_bin_labels(self, name: str, labels: Sequence[str], axis: int = 0) -> None:
        """Attach labels to the first bins of one axis; written as TAxis labels."""
        hist = self.get(name)
        if len(labels) > hist.axes[axis].nbins:
            raise HistogramError(
                f"Histogram '{name}': {len(labels)} labels for {hist.axes[axis].nbins} bins"
            )
        hist.bin_labels[axis] = tuple(labels)

    def names(self) -> list[str]:
        return list(self._histograms)

    def __contains__(self, name: object) -> bool:
        return name in self._histograms

    def __iter__(self) -> Iterator[Histogram]:
        return iter(self._histograms.values())

    def __len__(self) -> int:
        return len(self._histograms)

    def write_root(self, output_path: str | Path) -> Path:
        """
        Write every histogram to a ROOT file.

        Directory structure follows the "/"-separated histogram names.

        Args:
            output_path: Destination ROOT file (overwritten)

        Returns:
            Path of the written file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with uproot.recreate(output_path) as out_file:
            for hist in self._histograms.values():
                out_file[hist.name] = hist.to_root()

        self.logger.info(f"Wrote {len(self._histograms)} histograms to {output_path}")
        return output_path
