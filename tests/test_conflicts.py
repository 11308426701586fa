"""Tests for map code conflict checks."""

from pathlib import Path
from typing import List, Tuple

import pytest


class RecordingNotifier:
    def __init__(self) -> None:
        self.notices: List[Tuple[str, str]] = []

    def advise(self, title: str, message: str) -> None:
        self.notices.append((title, message))


class TestVanillaCatalog:
    """Test loading of the game's city catalog."""

    def test_load_codes(self, app_data: Path) -> None:
        """Test codes are read from the cities mapping."""
        from maploader.packages import VanillaCatalog

        catalog = VanillaCatalog.load(app_data / "cities" / "latest-cities.yml")

        assert catalog.codes == frozenset({"NYC", "LON"})
        assert "NYC" in catalog
        assert len(catalog) == 2

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        """Test a missing catalog file yields an empty catalog."""
        from maploader.packages import VanillaCatalog

        assert len(VanillaCatalog.load(tmp_path / "nope.yml")) == 0

    def test_malformed_yaml_is_empty(self, tmp_path: Path) -> None:
        """Test unparsable YAML yields an empty catalog."""
        from maploader.packages import VanillaCatalog

        path = tmp_path / "latest-cities.yml"
        path.write_text("cities: [unclosed", encoding="utf-8")
        assert len(VanillaCatalog.load(path)) == 0


class TestConflictResolver:
    """Test the order and outcome of conflict checks."""

    def _resolver(self, notifier: RecordingNotifier):
        from maploader.packages import ConflictResolver, VanillaCatalog

        return ConflictResolver(VanillaCatalog(["NYC", "LON"]), notifier)

    def test_free_code_passes(self) -> None:
        """Test an unused code raises nothing and shows no notice."""
        notifier = RecordingNotifier()
        self._resolver(notifier).check("TST", ["ABC"], ["NYC", "LON"])
        assert notifier.notices == []

    def test_loaded_code_rejected(self) -> None:
        """Test a code among the loaded maps raises AlreadyLoaded."""
        from maploader.errors import AlreadyLoaded

        notifier = RecordingNotifier()
        with pytest.raises(AlreadyLoaded) as exc_info:
            self._resolver(notifier).check("ABC", ["ABC"])

        assert exc_info.value.map_code == "ABC"
        assert notifier.notices == []

    def test_loaded_check_runs_before_vanilla(self) -> None:
        """Test a loaded vanilla code reports AlreadyLoaded without a notice."""
        from maploader.errors import AlreadyLoaded

        notifier = RecordingNotifier()
        with pytest.raises(AlreadyLoaded):
            self._resolver(notifier).check("NYC", ["NYC"])
        assert notifier.notices == []

    def test_vanilla_code_rejected_with_notice(self) -> None:
        """Test a vanilla code shows a notice and raises VanillaCollision."""
        from maploader.errors import VanillaCollision

        notifier = RecordingNotifier()
        with pytest.raises(VanillaCollision) as exc_info:
            self._resolver(notifier).check("LON", [])

        assert str(exc_info.value) == "Vanilla map already exists with this code."
        assert len(notifier.notices) == 1
        title, message = notifier.notices[0]
        assert title == "Map already exists"
        assert "LON" in message

    def test_installed_code_rejected(self) -> None:
        """Test a code with an existing map directory raises AlreadyLoaded."""
        from maploader.errors import AlreadyLoaded

        with pytest.raises(AlreadyLoaded):
            self._resolver(RecordingNotifier()).check("OLD", [], ["OLD"])

    def test_comparison_is_case_sensitive(self) -> None:
        """Test codes differing only in case do not clash."""
        notifier = RecordingNotifier()
        self._resolver(notifier).check("nyc", ["abc"], ["LON"])
        assert notifier.notices == []
