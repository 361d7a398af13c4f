"""
Project Store - Saved slideshows on disk.

ProjectStore keeps one JSON file per slideshow under a root directory.
ProjectLibrary is the UI's cached view of the store's summaries: it updates
optimistically, rolls back when the store refuses, and merges fresh
listings last-writer-wins by ``saved_at``.
"""
import json
import logging
import os
import re
import tempfile
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Set

from PyQt6.QtCore import QObject, pyqtSignal

from config import MAX_SAVED_SLIDESHOWS
from models.project import DEFAULT_OWNER, Project, ProjectSummary, now_ms


logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
PROJECT_SUFFIX = ".json"


class StoreError(RuntimeError):
    """A save, load, list or delete failed. The message is user-visible."""


class ProjectStore:
    """Slideshows as JSON files in *root*."""

    def __init__(self, root, max_projects: int = MAX_SAVED_SLIDESHOWS):
        self.root = Path(root)
        self.max_projects = max_projects

    def _path_for(self, project_id: str) -> Path:
        if not project_id or not _ID_PATTERN.match(project_id):
            raise StoreError(f"Invalid slideshow id: {project_id!r}")
        return self.root / f"{project_id}{PROJECT_SUFFIX}"

    def _project_files(self) -> List[Path]:
        if not self.root.exists():
            return []
        return sorted(self.root.glob(f"*{PROJECT_SUFFIX}"))

    def save(self, project: Project) -> str:
        """Write *project*, assigning an id if it has none. Returns the id."""
        is_new = project.id is None or not self._path_for(project.id).exists()
        if is_new and len(self._project_files()) >= self.max_projects:
            raise StoreError(f"You can only save up to {self.max_projects} slideshows.")

        project_id = project.id or f"slideshow-{uuid.uuid4()}"
        path = self._path_for(project_id)
        saved_at = now_ms()

        previous_id, previous_saved_at = project.id, project.saved_at
        project.id, project.saved_at = project_id, saved_at
        try:
            data = project.to_dict()
        except OSError as e:
            project.id, project.saved_at = previous_id, previous_saved_at
            raise StoreError(f"Could not read media for \"{project.name}\": {e}") from e

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix=".saving_", suffix=PROJECT_SUFFIX, dir=self.root)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False)
                os.replace(temp_path, path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
        except OSError as e:
            project.id, project.saved_at = previous_id, previous_saved_at
            raise StoreError(f"Could not save \"{project.name}\": {e}") from e

        logger.info("Saved slideshow %s (%s)", project.name, project_id)
        return project_id

    def load(self, project_id: str) -> Project:
        path = self._path_for(project_id)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StoreError("This slideshow no longer exists.") from e
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not load slideshow: {e}") from e

        try:
            project = Project.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Slideshow file is damaged: {e}") from e
        project.id = project_id
        return project

    def list(self, owner_scope: str = DEFAULT_OWNER) -> List[ProjectSummary]:
        """Summaries of every slideshow owned by *owner_scope*, newest first."""
        summaries = []
        for path in self._project_files():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning("Skipping unreadable slideshow file %s: %s", path.name, e)
                continue
            if data.get("owner", DEFAULT_OWNER) != owner_scope:
                continue
            summaries.append(ProjectSummary(
                id=path.stem,
                name=data.get("name", "Untitled"),
                saved_at=data.get("saved_at", 0),
            ))
        summaries.sort(key=lambda s: s.saved_at, reverse=True)
        return summaries

    def delete(self, project_id: str):
        path = self._path_for(project_id)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise StoreError("This slideshow no longer exists.") from e
        except OSError as e:
            raise StoreError(f"Could not delete slideshow: {e}") from e
        logger.info("Deleted slideshow %s", project_id)


class ProjectLibrary(QObject):
    """
    Cached, optimistically updated list of saved slideshows.

    Signals:
        changed: The summaries list changed.
    """

    changed = pyqtSignal()

    def __init__(self, store: ProjectStore, owner_scope: str = DEFAULT_OWNER, parent=None):
        super().__init__(parent)
        self.store = store
        self.owner_scope = owner_scope
        self._summaries: List[ProjectSummary] = []
        self._tombstones: Dict[str, int] = {}  # id -> local deletion time
        self._pending_saves: Set[str] = set()

    @property
    def summaries(self) -> List[ProjectSummary]:
        return list(self._summaries)

    def get(self, project_id: str) -> Optional[ProjectSummary]:
        for summary in self._summaries:
            if summary.id == project_id:
                return summary
        return None

    def refresh(self):
        """Fetch the store's listing and merge it in."""
        self.reconcile(self.store.list(self.owner_scope))

    def load(self, project_id: str) -> Project:
        return self.store.load(project_id)

    def save(self, project: Project) -> str:
        """Save through the store; the list updates before the store answers."""
        previous = list(self._summaries)
        optimistic = ProjectSummary(id=project.id or "", name=project.name, saved_at=now_ms())
        self._upsert(optimistic)
        if project.id:
            self._pending_saves.add(project.id)
        self.changed.emit()

        try:
            project_id = self.store.save(project)
        except StoreError:
            self._summaries = previous
            self._pending_saves.discard(project.id or "")
            self.changed.emit()
            raise

        self._summaries = [s for s in self._summaries if s.id not in ("", project_id)]
        self._pending_saves.discard(project_id)
        self._tombstones.pop(project_id, None)
        self._upsert(project.summary())
        self.changed.emit()
        return project_id

    def delete(self, project_id: str):
        previous = list(self._summaries)
        self._summaries = [s for s in self._summaries if s.id != project_id]
        self._tombstones[project_id] = now_ms()
        self.changed.emit()

        try:
            self.store.delete(project_id)
        except StoreError:
            self._summaries = previous
            self._tombstones.pop(project_id, None)
            self.changed.emit()
            raise

    def reconcile(self, remote: List[ProjectSummary]):
        """Merge an authoritative listing, last writer wins by saved_at.

        A pending local deletion hides a remote entry unless the remote
        copy was saved after the deletion.
        """
        local = {s.id: s for s in self._summaries}
        merged: Dict[str, ProjectSummary] = {}
        remote_ids = set()

        for summary in remote:
            remote_ids.add(summary.id)
            deleted_at = self._tombstones.get(summary.id)
            if deleted_at is not None:
                if summary.saved_at > deleted_at:
                    self._tombstones.pop(summary.id)
                    merged[summary.id] = summary
                continue
            mine = local.get(summary.id)
            if mine is not None and mine.saved_at > summary.saved_at:
                merged[summary.id] = mine
            else:
                merged[summary.id] = summary

        for project_id in self._pending_saves:
            if project_id not in merged and project_id in local:
                merged[project_id] = local[project_id]

        # Deletions the remote already reflects are settled
        for project_id in list(self._tombstones):
            if project_id not in remote_ids:
                del self._tombstones[project_id]

        self._summaries = sorted(merged.values(), key=lambda s: s.saved_at, reverse=True)
        self.changed.emit()

    def _upsert(self, summary: ProjectSummary):
        self._summaries = [s for s in self._summaries if s.id != summary.id or not summary.id]
        self._summaries.insert(0, summary)
        self._summaries.sort(key=lambda s: s.saved_at, reverse=True)
