"""Keyed store of rooms with atomic per-room updates.

Every mutating room operation goes through ``RoomRegistry.apply``: the room
is loaded fresh, the operation runs against that copy, and the result is
saved only if the operation succeeded. Operations on the same room are
serialized by a per-room lock inside the process and by the store's version
check across processes. Different rooms never wait on each other.
"""

import copy
import logging
import random
import string
import threading
import uuid
from typing import Callable, Dict, List, Optional

from .errors import ConflictError, NotFoundError, StaleRoomError
from .room import Identity, Room, RoomStatus

logger = logging.getLogger(__name__)


class InMemoryRoomStore:
    """Process-scoped room storage. Rooms are kept as serialized snapshots."""

    def __init__(self):
        self._rooms: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def load(self, room_id: str) -> Optional[Room]:
        with self._lock:
            data = self._rooms.get(room_id)
            return Room.from_dict(copy.deepcopy(data)) if data else None

    def find_by_code(self, join_code: str) -> Optional[Room]:
        with self._lock:
            matches = [d for d in self._rooms.values() if d['join_code'] == join_code]
            if not matches:
                return None
            # Active rooms win over finished ones reusing the same code
            matches.sort(key=lambda d: (d['status'] == RoomStatus.FINISHED, -d['created_at']))
            return Room.from_dict(copy.deepcopy(matches[0]))

    def code_in_use(self, join_code: str) -> bool:
        with self._lock:
            return any(
                d['join_code'] == join_code and d['status'] != RoomStatus.FINISHED
                for d in self._rooms.values()
            )

    def save(self, room: Room, check_version: bool = True) -> None:
        with self._lock:
            current = self._rooms.get(room.id)
            stored_version = current['version'] if current else 0
            if check_version and stored_version != room.version:
                raise StaleRoomError(f'room {room.id} is at version {stored_version}, not {room.version}')
            room.version = stored_version + 1
            self._rooms[room.id] = room.to_dict()

    def delete(self, room_id: str) -> None:
        with self._lock:
            self._rooms.pop(room_id, None)

    def rooms_for_user(self, user_id: str, status: str = None) -> List[Room]:
        with self._lock:
            found = [
                Room.from_dict(copy.deepcopy(d)) for d in self._rooms.values()
                if any(m['user_id'] == user_id for m in d['members'])
                and (status is None or d['status'] == status)
            ]
        return found


class RoomRegistry:
    def __init__(self, store=None, code_length: int = 6, save_attempts: int = 3, code_attempts: int = 50):
        self.store = store if store is not None else InMemoryRoomStore()
        self.code_length = code_length
        self.save_attempts = max(1, save_attempts)
        self.code_attempts = code_attempts
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._create_lock = threading.Lock()

    def _lock_for(self, room_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = self._locks[room_id] = threading.Lock()
            return lock

    def generate_code(self) -> str:
        """Fixed-length numeric code, unique among rooms that are not finished."""
        for _ in range(self.code_attempts):
            code = random.choice(string.digits[1:]) + ''.join(
                random.choices(string.digits, k=self.code_length - 1)
            )
            if not self.store.code_in_use(code):
                return code
        raise ConflictError('could not allocate a free join code')

    def create(self, host: Identity) -> Room:
        with self._create_lock:
            room = Room.create(uuid.uuid4().hex, self.generate_code(), host)
            self.store.save(room)
        logger.info(f"[create] room={room.id} code={room.join_code} host={host.user_id}")
        return room

    def find_by_id(self, room_id: str) -> Optional[Room]:
        return self.store.load(room_id)

    def find_by_code(self, join_code: str) -> Optional[Room]:
        return self.store.find_by_code(join_code)

    def get(self, room_id: str) -> Room:
        room = self.find_by_id(room_id)
        if room is None:
            raise NotFoundError(f'room {room_id} not found')
        return room

    def update(self, room: Room) -> Room:
        """Replace the stored room wholesale (last writer wins)."""
        self.store.save(room, check_version=False)
        return room

    def apply(self, room_id: str, operation: Callable[[Room], object]) -> Room:
        """Run ``operation`` against the current room state atomically.

        Errors raised by the operation propagate and nothing is saved. A
        save that loses a version race reloads and re-runs the operation.
        """
        finished = False
        try:
            with self._lock_for(room_id):
                for attempt in range(1, self.save_attempts + 1):
                    room = self.get(room_id)
                    finished = room.status == RoomStatus.FINISHED
                    before = room.to_dict()
                    operation(room)
                    finished = room.status == RoomStatus.FINISHED
                    if room.to_dict() == before:
                        return room
                    try:
                        self.store.save(room)
                        return room
                    except StaleRoomError:
                        logger.info(f"[stale-save] room={room_id} attempt={attempt}")
            raise ConflictError(f'room {room_id} kept changing; try again')
        finally:
            # Finished rooms never change again; stop tracking their lock.
            if finished:
                self._release_lock(room_id)

    def _release_lock(self, room_id: str) -> None:
        with self._locks_guard:
            self._locks.pop(room_id, None)

    def delete(self, room_id: str) -> None:
        self.store.delete(room_id)
        self._release_lock(room_id)
        logger.info(f"[delete] room={room_id}")
