"""
Storage Layout

Maps every logical document of the results store onto a path below one base
directory::

    runs/{run_id}/metadata.json
    runs/{run_id}/{library}/{category}/{scenario}.json
    aggregated/by-library/{library}.json
    aggregated/by-scenario/{scenario}.json
    aggregated/by-category/{category}.json
    aggregated/comparisons/library-comparisons/{run_id}-library-comparison.json
    aggregated/comparisons/version-comparisons/{name}-{v1}-vs-{v2}.json
    aggregated/comparisons/historical/{library}-timeline.json
    metadata/runs-index.json
    ui-data/...
    archive/{run_id}.zip
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Union

from ormbench.core.interfaces import IFileStore

METADATA_FILE = "metadata.json"


class StorageLayout:
    """Path helpers for the results tree."""

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)

    # -- top-level areas ---------------------------------------------------

    @property
    def runs_dir(self) -> Path:
        return self.base_dir / "runs"

    @property
    def aggregated_dir(self) -> Path:
        return self.base_dir / "aggregated"

    @property
    def metadata_dir(self) -> Path:
        return self.base_dir / "metadata"

    @property
    def ui_data_dir(self) -> Path:
        return self.base_dir / "ui-data"

    @property
    def archive_dir(self) -> Path:
        return self.base_dir / "archive"

    @property
    def comparisons_dir(self) -> Path:
        return self.aggregated_dir / "comparisons"

    # -- runs --------------------------------------------------------------

    def run_dir(self, run_id: str) -> Path:
        return self.runs_dir / run_id

    def run_metadata(self, run_id: str) -> Path:
        return self.run_dir(run_id) / METADATA_FILE

    def library_dir(self, run_id: str, library_id: str) -> Path:
        return self.run_dir(run_id) / library_id

    def measurement(self, run_id: str, library_id: str, category: str, scenario_id: str) -> Path:
        return self.library_dir(run_id, library_id) / category / f"{scenario_id}.json"

    @property
    def runs_index(self) -> Path:
        return self.metadata_dir / "runs-index.json"

    # -- aggregates --------------------------------------------------------

    def by_library(self, library_id: str) -> Path:
        return self.aggregated_dir / "by-library" / f"{library_id}.json"

    def by_scenario(self, scenario_id: str) -> Path:
        return self.aggregated_dir / "by-scenario" / f"{scenario_id}.json"

    def by_category(self, category: str) -> Path:
        return self.aggregated_dir / "by-category" / f"{category}.json"

    # -- comparisons -------------------------------------------------------

    @property
    def library_comparisons_dir(self) -> Path:
        return self.comparisons_dir / "library-comparisons"

    def library_comparison(self, run_id: str) -> Path:
        return self.library_comparisons_dir / f"{run_id}-library-comparison.json"

    @property
    def latest_library_comparison(self) -> Path:
        return self.library_comparisons_dir / "latest.json"

    def version_comparison(self, library_name: str, versions: Iterable[str]) -> Path:
        name = f"{library_name}-" + "-vs-".join(versions)
        return self.comparisons_dir / "version-comparisons" / f"{name}.json"

    def run_comparison(self, run_a: str, run_b: str) -> Path:
        return self.comparisons_dir / "run-comparisons" / f"{run_a}-vs-{run_b}.json"

    def timeline(self, library_id: str) -> Path:
        return self.comparisons_dir / "historical" / f"{library_id}-timeline.json"

    # -- UI projection -----------------------------------------------------

    def ui(self, *parts: str) -> Path:
        return self.ui_data_dir.joinpath(*parts)

    def archive(self, run_id: str) -> Path:
        """Archive base name; the archiver appends ``.zip``."""
        return self.archive_dir / run_id

    async def initialize(self, store: IFileStore) -> None:
        """Create the directory skeleton."""
        for path in (
            self.runs_dir,
            self.aggregated_dir / "by-library",
            self.aggregated_dir / "by-scenario",
            self.aggregated_dir / "by-category",
            self.library_comparisons_dir,
            self.comparisons_dir / "version-comparisons",
            self.comparisons_dir / "historical",
            self.metadata_dir,
            self.ui("latest"),
            self.ui("comparisons"),
            self.ui("historical"),
        ):
            await store.makedirs(path)
