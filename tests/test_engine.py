"""Tests for the categorization engine state machine."""

import tempfile
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest

from image_triage.core.engine import CategorizationEngine
from image_triage.core.catalog import FileCatalog
from image_triage.core.folders import FolderSet
from image_triage.core.models import EngineState, Intent, IntentKind, OperationKind
from image_triage.core.exceptions import (
    CollisionError, NothingToUndoError, CatalogExhaustedError, UnknownCategoryError,
    FileSystemError, PathNotFoundError, PermissionDeniedError, ValidationError
)


class EngineTestBase:
    """Creates input, trash and two category folders in a temporary directory."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.input_dir = self.temp_dir / "input"
        self.trash_dir = self.temp_dir / "trash"
        self.cats_dir = self.temp_dir / "cats"
        self.dogs_dir = self.temp_dir / "dogs"
        for directory in (self.input_dir, self.trash_dir, self.cats_dir, self.dogs_dir):
            directory.mkdir()

    def teardown_method(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def make_images(self, *names):
        for name in names:
            (self.input_dir / name).write_bytes(f"image data {name}".encode())

    def make_engine(self):
        folders = FolderSet.validate(
            self.input_dir,
            self.trash_dir,
            {"cats": self.cats_dir, "dogs": self.dogs_dir},
        )
        return CategorizationEngine.for_folders(folders)

    def snapshot(self):
        """Relative paths and contents of every file under the temp directory."""
        return {
            str(p.relative_to(self.temp_dir)): p.read_bytes()
            for p in sorted(self.temp_dir.rglob("*")) if p.is_file()
        }


class TestScenarios(EngineTestBase):
    """The reference triage walkthrough."""

    def test_assign_moves_file_and_advances(self):
        self.make_images("a.jpg", "b.jpg")
        engine = self.make_engine()

        result = engine.assign("cats")

        assert (self.cats_dir / "a.jpg").exists()
        assert not (self.input_dir / "a.jpg").exists()
        assert engine.remaining_count() == 1
        assert engine.current_entry().file_name == "b.jpg"
        assert result.operation.kind is OperationKind.MOVE
        assert result.operation.category == "cats"
        assert result.state is EngineState.ACTIVE

    def test_undo_restores_assigned_file(self):
        self.make_images("a.jpg", "b.jpg")
        engine = self.make_engine()
        engine.assign("cats")

        result = engine.undo()

        assert (self.input_dir / "a.jpg").exists()
        assert not (self.cats_dir / "a.jpg").exists()
        assert engine.remaining_count() == 2
        assert engine.current_entry().file_name == "a.jpg"
        assert result.reversed

    def test_discard_then_undo(self):
        self.make_images("a.jpg", "b.jpg")
        engine = self.make_engine()
        engine.assign("cats")

        result = engine.discard()
        assert (self.trash_dir / "b.jpg").exists()
        assert not (self.input_dir / "b.jpg").exists()
        assert result.operation.kind is OperationKind.DELETE
        assert result.operation.trash_path == self.trash_dir / "b.jpg"
        assert result.state is EngineState.EXHAUSTED

        engine.undo()
        assert (self.input_dir / "b.jpg").exists()
        assert not (self.trash_dir / "b.jpg").exists()
        assert engine.current_entry().file_name == "b.jpg"

    def test_empty_input_starts_exhausted(self):
        engine = self.make_engine()

        assert engine.state is EngineState.EXHAUSTED
        assert engine.current_entry() is None
        assert engine.remaining_count() == 0
        assert not engine.can_undo()

        with pytest.raises(CatalogExhaustedError):
            engine.assign("cats")
        with pytest.raises(CatalogExhaustedError):
            engine.discard()

    def test_collision_leaves_everything_unchanged(self):
        self.make_images("a.jpg", "b.jpg")
        (self.cats_dir / "a.jpg").write_bytes(b"already sorted")
        engine = self.make_engine()
        before = self.snapshot()

        with pytest.raises(CollisionError) as exc_info:
            engine.assign("cats")

        assert exc_info.value.path == self.cats_dir / "a.jpg"
        assert self.snapshot() == before
        assert engine.current_entry().file_name == "a.jpg"
        assert engine.remaining_count() == 2
        assert not engine.can_undo()

    def test_discard_collision_leaves_everything_unchanged(self):
        self.make_images("a.jpg", "b.jpg")
        (self.trash_dir / "a.jpg").write_bytes(b"discarded last week")
        engine = self.make_engine()
        before = self.snapshot()

        with pytest.raises(CollisionError) as exc_info:
            engine.discard()

        assert exc_info.value.path == self.trash_dir / "a.jpg"
        assert self.snapshot() == before
        assert engine.current_entry().file_name == "a.jpg"
        assert engine.remaining_count() == 2
        assert not engine.can_undo()


class TestEngineProperties(EngineTestBase):
    """Invariants that hold for any sequence of actions."""

    def test_remaining_count_decreases_by_one(self):
        self.make_images("a.png", "b.png", "c.png", "d.png")
        engine = self.make_engine()

        counts = [engine.remaining_count()]
        engine.assign("cats")
        counts.append(engine.remaining_count())
        engine.discard()
        counts.append(engine.remaining_count())
        engine.assign("dogs")
        counts.append(engine.remaining_count())
        engine.discard()
        counts.append(engine.remaining_count())

        assert counts == [4, 3, 2, 1, 0]
        assert engine.state is EngineState.EXHAUSTED

    def test_undo_is_exact_inverse(self):
        self.make_images("a.jpg", "b.jpg", "c.jpg")
        engine = self.make_engine()
        engine.assign("dogs")

        before = self.snapshot()
        cursor_before = engine.current_entry()
        remaining_before = engine.remaining_count()

        engine.discard()
        engine.undo()

        assert self.snapshot() == before
        assert engine.current_entry() == cursor_before
        assert engine.remaining_count() == remaining_before

    def test_second_undo_raises_nothing_to_undo(self):
        self.make_images("a.jpg", "b.jpg")
        engine = self.make_engine()
        engine.assign("cats")
        engine.undo()
        before = self.snapshot()

        with pytest.raises(NothingToUndoError):
            engine.undo()

        assert self.snapshot() == before
        assert engine.remaining_count() == 2
        assert engine.current_entry().file_name == "a.jpg"

    def test_sequential_undo_walks_back(self):
        self.make_images("a.jpg", "b.jpg", "c.jpg")
        engine = self.make_engine()
        engine.assign("cats")
        engine.discard()
        engine.assign("dogs")

        assert [op.sequence for op in engine.history()] == [1, 2, 3]

        engine.undo()
        engine.undo()
        engine.undo()

        assert sorted(p.name for p in self.input_dir.iterdir()) == ["a.jpg", "b.jpg", "c.jpg"]
        assert engine.current_entry().file_name == "a.jpg"
        assert not engine.can_undo()

    def test_undo_from_exhausted_returns_to_active(self):
        self.make_images("a.jpg")
        engine = self.make_engine()
        engine.discard()
        assert engine.state is EngineState.EXHAUSTED

        result = engine.undo()

        assert result.state is EngineState.ACTIVE
        assert engine.state is EngineState.ACTIVE

    def test_sequence_numbers_are_not_reused(self):
        self.make_images("a.jpg", "b.jpg")
        engine = self.make_engine()
        engine.assign("cats")
        engine.undo()

        result = engine.assign("dogs")

        assert result.operation.sequence == 2


class TestEngineFailures(EngineTestBase):
    """Failures leave the engine exactly as it was."""

    def test_unknown_category(self):
        self.make_images("a.jpg")
        engine = self.make_engine()

        with pytest.raises(UnknownCategoryError):
            engine.assign("birds")

        assert (self.input_dir / "a.jpg").exists()
        assert not engine.can_undo()

    def test_file_removed_out_of_band(self):
        self.make_images("a.jpg", "b.jpg")
        engine = self.make_engine()
        (self.input_dir / "a.jpg").unlink()

        with pytest.raises(PathNotFoundError):
            engine.assign("cats")

        assert engine.remaining_count() == 2
        assert not engine.can_undo()

    def test_path_too_long_is_a_file_system_error(self):
        name = "a" * 240 + ".jpg"
        self.make_images(name)
        deep_trash = self.temp_dir / "deep_trash"
        while len(str(deep_trash)) < 3880:
            deep_trash = deep_trash / ("d" * min(200, 3880 - len(str(deep_trash))))
        deep_trash.mkdir(parents=True)
        folders = FolderSet.validate(self.input_dir, deep_trash, {"cats": self.cats_dir})
        engine = CategorizationEngine.for_folders(folders)

        with pytest.raises(FileSystemError):
            engine.discard()

        assert (self.input_dir / name).exists()
        assert engine.remaining_count() == 1
        assert not engine.can_undo()

    def test_skip_missing_drops_vanished_entry(self):
        self.make_images("a.jpg", "b.jpg")
        engine = self.make_engine()
        (self.input_dir / "a.jpg").unlink()

        skipped = engine.skip_missing()

        assert skipped.file_name == "a.jpg"
        assert engine.current_entry().file_name == "b.jpg"
        assert engine.remaining_count() == 1
        assert not engine.can_undo()

    def test_skip_missing_refuses_existing_file(self):
        self.make_images("a.jpg")
        engine = self.make_engine()

        with pytest.raises(ValidationError):
            engine.skip_missing()

        assert engine.remaining_count() == 1

    def test_undo_after_skip_returns_to_triaged_entry(self):
        self.make_images("a.jpg", "b.jpg", "c.jpg")
        engine = self.make_engine()
        engine.assign("cats")
        (self.input_dir / "b.jpg").unlink()
        engine.skip_missing()

        engine.undo()

        assert engine.current_entry().file_name == "a.jpg"
        assert engine.remaining_count() == 2

    def test_move_error_does_not_touch_log_or_cursor(self):
        self.make_images("a.jpg")
        engine = self.make_engine()

        with patch.object(engine.mover, "move", side_effect=PermissionDeniedError("denied")):
            with pytest.raises(PermissionDeniedError):
                engine.discard()

        assert engine.remaining_count() == 1
        assert not engine.can_undo()

    def test_undo_with_occupied_source_keeps_history(self):
        self.make_images("a.jpg")
        engine = self.make_engine()
        engine.assign("cats")
        (self.input_dir / "a.jpg").write_bytes(b"new file with the same name")

        with pytest.raises(FileSystemError) as exc_info:
            engine.undo()

        assert isinstance(exc_info.value.__cause__, CollisionError)
        assert engine.can_undo()
        assert (self.cats_dir / "a.jpg").exists()
        assert engine.state is EngineState.EXHAUSTED

        # Retry succeeds once the user clears the way
        (self.input_dir / "a.jpg").unlink()
        engine.undo()
        assert (self.input_dir / "a.jpg").read_bytes() == b"image data a.jpg"
        assert not engine.can_undo()

    def test_undo_with_missing_destination_keeps_history(self):
        self.make_images("a.jpg")
        engine = self.make_engine()
        engine.discard()
        (self.trash_dir / "a.jpg").unlink()

        with pytest.raises(PathNotFoundError):
            engine.undo()

        assert engine.can_undo()
        assert engine.remaining_count() == 0


class TestDispatch(EngineTestBase):
    """Intent based entry point."""

    def test_dispatch_routes_intents(self):
        self.make_images("a.jpg", "b.jpg")
        engine = self.make_engine()

        assigned = engine.dispatch(Intent.assign("dogs"))
        discarded = engine.dispatch(Intent.discard())
        undone = engine.dispatch(Intent.undo())

        assert assigned.intent.kind is IntentKind.ASSIGN
        assert assigned.remaining == 1
        assert discarded.operation.kind is OperationKind.DELETE
        assert undone.reversed
        assert undone.current.file_name == "b.jpg"

    def test_assign_intent_requires_category(self):
        self.make_images("a.jpg")
        engine = self.make_engine()

        with pytest.raises(ValidationError):
            engine.dispatch(Intent(IntentKind.ASSIGN))
