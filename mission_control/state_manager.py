"""
mission_control.state_manager - Crash-Safe Mission State Persistence

This module provides the StateManager class, which owns the authoritative
in-memory mission and checkpoint maps and snapshots them to disk.

The StateManager handles:
- Synchronous reads and mutations against the in-memory maps
- Debounced background flushing (each mutation re-arms a timer)
- Atomic snapshot writes with a backup of the previous snapshot
- Recovery on startup: snapshot, then backup, then empty state
- Persistence metrics, retention sweeps and a shutdown flush

Files in the state directory:
    state.json      Current snapshot
    state.json.bak  Snapshot as of the previous successful flush
"""

import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import StateConfig, configure_log_level
from .errors import (
    MissionExistsError,
    MissionNotFoundError,
    StateCorruptedError,
    StateDirectoryError,
    StatePersistenceError,
)
from .io_utils import atomic_write_json, ensure_directory, read_json
from .metrics import PersistenceMetrics
from .models import Checkpoint, Mission, MissionState

logger = logging.getLogger(__name__)

STATE_VERSION = "1.0.0"

SECONDS_PER_DAY = 60 * 60 * 24


class StateManager:
    """
    Owns mission state and its on-disk snapshot.

    Usage:
        store = StateManager.create(StateConfig(state_dir=Path("./.state")))
        store.add_mission(mission)      # schedules a debounced flush
        store.force_save()              # flush now, raise on failure
        store.shutdown()                # final flush, stop scheduling
    """

    STATE_FILE = "state.json"
    STATE_BACKUP = "state.json.bak"

    def __init__(self, config: StateConfig):
        """
        Initialize an empty, unloaded state manager.

        Prefer StateManager.create(), which also loads persisted state.

        Args:
            config: Persistence configuration
        """
        self.config = config
        self.metrics = PersistenceMetrics()

        self._missions: Dict[str, Mission] = {}
        self._checkpoints: Dict[str, Checkpoint] = {}

        # _lock guards the maps and flags; _save_lock serializes disk writes
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._save_timer: Optional[threading.Timer] = None

        self._dirty = False
        self._generation = 0
        self._shutting_down = False

        self.last_saved: Optional[datetime] = None
        self.last_save_error: Optional[StatePersistenceError] = None
        self.recovery_error: Optional[StateCorruptedError] = None

    @classmethod
    def create(cls, config: StateConfig) -> 'StateManager':
        """
        Create a StateManager and load any persisted state.

        Never raises for unreadable or corrupted state files; the instance
        starts empty instead.

        Args:
            config: Persistence configuration

        Returns:
            Ready-to-use StateManager
        """
        if config.log_level is not None:
            try:
                configure_log_level(config.log_level)
            except ValueError as e:
                logger.warning(f"Ignoring log level {config.log_level!r}: {e}")

        instance = cls(config)
        if config.enable_persistence:
            instance.initialize_persistence()
        return instance

    # =========================================================================
    # Paths and flags
    # =========================================================================

    @property
    def state_dir(self) -> Path:
        return Path(self.config.state_dir)

    @property
    def state_file(self) -> Path:
        return self.state_dir / self.STATE_FILE

    @property
    def backup_file(self) -> Path:
        return self.state_dir / self.STATE_BACKUP

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock guarding the in-memory maps; hold it while mutating a stored mission."""
        return self._lock

    @property
    def is_dirty(self) -> bool:
        """True when in-memory state has changes not yet flushed."""
        with self._lock:
            return self._dirty

    @property
    def is_shutting_down(self) -> bool:
        with self._lock:
            return self._shutting_down

    @property
    def has_pending_save(self) -> bool:
        """True while a debounced flush is scheduled."""
        with self._lock:
            return self._save_timer is not None

    # =========================================================================
    # Mission operations
    # =========================================================================

    def add_mission(self, mission: Mission) -> None:
        """
        Add a new mission.

        Raises:
            MissionExistsError: If a mission with the same id is stored
        """
        with self._lock:
            existing = self._missions.get(mission.id)
            if existing is not None:
                raise MissionExistsError(mission.id, existing.state.value)
            self._missions[mission.id] = mission
        logger.info(f"Mission added: {mission.id}")
        self._debounced_save()

    def get_mission(self, mission_id: str) -> Mission:
        """
        Get a mission by id.

        Raises:
            MissionNotFoundError: If the id is unknown
        """
        with self._lock:
            mission = self._missions.get(mission_id)
            if mission is None:
                raise MissionNotFoundError(
                    mission_id,
                    available_missions=len(self._missions),
                    suggestion="Use get_all_missions() or get_missions_by_state() to list available missions",
                )
            return mission

    def has_mission(self, mission_id: str) -> bool:
        with self._lock:
            return mission_id in self._missions

    def update_mission(self, mission: Mission) -> None:
        """
        Store changes made to a mission and schedule a flush.

        Raises:
            MissionNotFoundError: If the mission is not stored
        """
        with self._lock:
            if mission.id not in self._missions:
                raise MissionNotFoundError(
                    mission.id,
                    available_missions=len(self._missions),
                    suggestion="Verify mission ID before updating",
                )
            mission.updated_at = datetime.now()
            self._missions[mission.id] = mission
        self._debounced_save()

    def delete_mission(self, mission_id: str) -> None:
        """
        Delete a mission and its checkpoints.

        Raises:
            MissionNotFoundError: If the id is unknown
        """
        with self._lock:
            if self._missions.pop(mission_id, None) is None:
                raise MissionNotFoundError(
                    mission_id,
                    available_missions=len(self._missions),
                    suggestion="Mission may have been already deleted",
                )
            for checkpoint_id in [
                cid for cid, cp in self._checkpoints.items() if cp.mission_id == mission_id
            ]:
                del self._checkpoints[checkpoint_id]
        logger.info(f"Mission deleted: {mission_id}")
        self._debounced_save()

    def get_all_missions(self) -> List[Mission]:
        with self._lock:
            return list(self._missions.values())

    def get_missions_by_state(self, state: MissionState) -> List[Mission]:
        return [m for m in self.get_all_missions() if m.state == state]

    def get_active_missions_count(self) -> int:
        return len(self.get_missions_by_state(MissionState.IN_PROGRESS))

    def cleanup_old_missions(self, now: Optional[datetime] = None) -> int:
        """
        Delete terminal missions older than their retention window.

        COMPLETED missions use completed_retention_days, FAILED missions use
        failed_retention_days. Missions without completed_at, in another
        state, or within the window are kept.

        Args:
            now: Reference time (defaults to datetime.now())

        Returns:
            Number of missions deleted
        """
        now = now or datetime.now()
        retention = {
            MissionState.COMPLETED: self.config.completed_retention_days,
            MissionState.FAILED: self.config.failed_retention_days,
        }

        expired = []
        for mission in self.get_all_missions():
            days = retention.get(mission.state)
            if days is None or mission.completed_at is None:
                continue
            age_days = (now - mission.completed_at).total_seconds() / SECONDS_PER_DAY
            if age_days > days:
                expired.append(mission.id)

        for mission_id in expired:
            self.delete_mission(mission_id)

        if expired:
            logger.info(f"Cleaned up {len(expired)} old missions")
        return len(expired)

    # =========================================================================
    # Checkpoint operations
    # =========================================================================

    def add_checkpoint(self, checkpoint: Checkpoint) -> None:
        """
        Store a checkpoint, dropping the mission's oldest beyond max_checkpoints.
        """
        with self._lock:
            self._checkpoints[checkpoint.id] = checkpoint
            owned = [
                cp for cp in self._checkpoints.values() if cp.mission_id == checkpoint.mission_id
            ]
            overflow = len(owned) - self.config.max_checkpoints
            if overflow > 0:
                owned.sort(key=lambda cp: (cp.attempt_number, cp.timestamp))
                for cp in owned[:overflow]:
                    del self._checkpoints[cp.id]
                logger.debug(f"Dropped {overflow} old checkpoint(s) for mission {checkpoint.mission_id}")
        self._debounced_save()

    def get_checkpoint(self, checkpoint_id: str) -> Optional[Checkpoint]:
        with self._lock:
            return self._checkpoints.get(checkpoint_id)

    def get_checkpoints_for_mission(self, mission_id: str) -> List[Checkpoint]:
        """Get a mission's checkpoints in attempt order."""
        with self._lock:
            owned = [cp for cp in self._checkpoints.values() if cp.mission_id == mission_id]
        return sorted(owned, key=lambda cp: (cp.attempt_number, cp.timestamp))

    # =========================================================================
    # Persistence lifecycle
    # =========================================================================

    def initialize_persistence(self) -> None:
        """
        Prepare the state directory and load persisted state.

        Failures are logged and the manager keeps running from memory.
        """
        try:
            self._ensure_state_directory()
            self.load_state()
            logger.info(
                f"Persistence layer initialized (state_dir={self.state_dir}, "
                f"missions_loaded={len(self._missions)})"
            )
        except StatePersistenceError as e:
            logger.error(f"Failed to initialize persistence: {e}")
            logger.warning("Running in memory-only mode")

    def _ensure_state_directory(self) -> None:
        try:
            ensure_directory(self.state_dir, mode=0o750)
        except OSError as e:
            raise StateDirectoryError(str(self.state_dir), str(e))

    def _debounced_save(self) -> None:
        """Mark state dirty and (re)arm the flush timer."""
        if not self.config.enable_persistence:
            return

        with self._lock:
            self._dirty = True
            self._generation += 1
            if self._shutting_down:
                return

            if self._save_timer is not None:
                self._save_timer.cancel()

            timer = threading.Timer(self.config.save_debounce_seconds, self._on_save_timer)
            timer.daemon = True
            timer.name = "StateManagerDebouncedSave"
            self._save_timer = timer
            timer.start()

    def _on_save_timer(self) -> None:
        with self._lock:
            if self._save_timer is not None and self._save_timer is not threading.current_thread():
                # A newer timer replaced this one; let it do the flush
                return
            self._save_timer = None

        try:
            self.save_state()
        except StatePersistenceError as e:
            self.last_save_error = e
            logger.error(f"Debounced save failed: {e}")

    def _cancel_save_timer(self) -> None:
        with self._lock:
            if self._save_timer is not None:
                self._save_timer.cancel()
                self._save_timer = None

    def save_state(self) -> None:
        """
        Write the current state to disk using the atomic write protocol.

        Raises:
            StatePersistenceError: If serialization or any file operation fails
        """
        with self._save_lock:
            start = time.perf_counter()
            try:
                with self._lock:
                    data = self.serialize_state()
                    generation = self._generation
                    mission_count = len(self._missions)
                    checkpoint_count = len(self._checkpoints)

                file_size = atomic_write_json(
                    self.state_file,
                    data,
                    backup_path=self.backup_file,
                    mode=0o640,
                )
            except (OSError, TypeError, ValueError) as e:
                raise StatePersistenceError('save', str(e))

            with self._lock:
                # Mutations made during the write keep the store dirty
                if self._generation == generation:
                    self._dirty = False
                self.last_saved = datetime.now()
                self.last_save_error = None

            duration_ms = (time.perf_counter() - start) * 1000
            self.metrics.record_save(duration_ms, file_size)

        logger.debug(
            f"State saved ({mission_count} missions, {checkpoint_count} checkpoints, "
            f"{file_size} bytes, {duration_ms:.1f}ms)"
        )

    def force_save(self) -> None:
        """
        Flush immediately, pre-empting any pending debounced save.

        Raises:
            StatePersistenceError: If persistence is disabled or the write fails
        """
        if not self.config.enable_persistence:
            raise StatePersistenceError('force-save', 'Persistence is not enabled')

        self._cancel_save_timer()
        self.save_state()

    def shutdown(self) -> None:
        """
        Stop scheduling flushes and write a final snapshot if dirty.

        Calling shutdown() again is a no-op.

        Raises:
            StatePersistenceError: If the final flush fails
        """
        with self._lock:
            if self._shutting_down:
                return
            self._shutting_down = True
            dirty = self._dirty

        self._cancel_save_timer()

        if dirty and self.config.enable_persistence:
            logger.info("Saving state before shutdown...")
            self.save_state()
            logger.info("State saved successfully")

    def close(self) -> None:
        """Cancel any pending flush without writing."""
        self._cancel_save_timer()

    def __enter__(self) -> 'StateManager':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # =========================================================================
    # Loading and recovery
    # =========================================================================

    def load_state(self, strict: bool = False) -> bool:
        """
        Load the snapshot, falling back to the backup, then to empty state.

        Args:
            strict: Raise StateCorruptedError when files exist but none can be read

        Returns:
            True if state was loaded from either file

        Raises:
            StateCorruptedError: Only when strict and both files are unusable
        """
        start = time.perf_counter()

        loaded = self._try_load_state_file(self.state_file)
        if loaded is None:
            if self.state_file.exists():
                logger.warning("Primary state file corrupted, trying backup...")
            loaded = self._try_load_state_file(self.backup_file)
            if loaded is not None:
                logger.info("Successfully recovered from backup")

        if loaded is None:
            if self.state_file.exists() or self.backup_file.exists():
                self.recovery_error = StateCorruptedError(
                    str(self.state_file),
                    "neither the state file nor its backup could be loaded",
                    has_backup=self.backup_file.exists(),
                )
                logger.error(str(self.recovery_error))
                if strict:
                    raise self.recovery_error
            logger.warning("No valid state found, starting fresh")
            return False

        missions, checkpoints, saved_at, version = loaded
        with self._lock:
            self._missions = missions
            self._checkpoints = checkpoints
            self._dirty = False
            self.last_saved = saved_at

        duration_ms = (time.perf_counter() - start) * 1000
        self.metrics.record_load(duration_ms)

        logger.info(
            f"State loaded successfully (version={version}, missions={len(missions)}, "
            f"checkpoints={len(checkpoints)})"
        )
        return True

    def _try_load_state_file(
        self, path: Path
    ) -> Optional[Tuple[Dict[str, Mission], Dict[str, Checkpoint], Optional[datetime], Any]]:
        """Parse and deserialize one state file, or return None if unusable."""
        try:
            data = read_json(path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load state from {path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Failed to load state from {path}: top-level value is not an object")
            return None

        version = data.get("version")
        if version != STATE_VERSION:
            # Best-effort load; no migrations exist yet
            logger.warning(f"State version mismatch: file={version}, current={STATE_VERSION}")

        try:
            missions, checkpoints = self.deserialize_state(data)
            saved_at = datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else None
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to deserialize state from {path}: {e!r}")
            return None

        return missions, checkpoints, saved_at, version

    # =========================================================================
    # Serialization
    # =========================================================================

    def serialize_state(self) -> Dict[str, Any]:
        """
        Convert the in-memory state to the JSON-compatible snapshot form.

        Maps become ordered lists of [id, record] pairs.
        """
        start = time.perf_counter()
        with self._lock:
            snapshot = {
                "version": STATE_VERSION,
                "timestamp": datetime.now().isoformat(),
                "missions": [[mid, m.to_dict()] for mid, m in self._missions.items()],
                "checkpoints": [[cid, c.to_dict()] for cid, c in self._checkpoints.items()],
            }
        self.metrics.record_serialization((time.perf_counter() - start) * 1000)
        return snapshot

    def deserialize_state(
        self, data: Dict[str, Any]
    ) -> Tuple[Dict[str, Mission], Dict[str, Checkpoint]]:
        """
        Rebuild mission and checkpoint maps from a snapshot.

        Raises:
            KeyError, TypeError, ValueError: If the snapshot is malformed
        """
        start = time.perf_counter()

        missions: Dict[str, Mission] = {}
        for mission_id, record in data.get("missions", []):
            missions[mission_id] = Mission.from_dict(record)

        checkpoints: Dict[str, Checkpoint] = {}
        for checkpoint_id, record in data.get("checkpoints", []):
            checkpoints[checkpoint_id] = Checkpoint.from_dict(record)

        self.metrics.record_deserialization((time.perf_counter() - start) * 1000)
        return missions, checkpoints

    def get_metrics(self) -> Dict[str, Any]:
        """Get a copy of the persistence metrics."""
        return self.metrics.get_summary()
