"""SQL room storage on top of Flask-SQLAlchemy.

Must be used inside an application context. Saves are guarded by the
``version`` column: an update only lands if the stored version is still the
one the room was loaded at.
"""

import json
import logging
from typing import List, Optional

from scorekeeper import db
from scorekeeper.models import RoomMember, RoomRecord

from .errors import StaleRoomError
from .room import Room, RoomStatus

logger = logging.getLogger(__name__)


class SqlRoomStore:

    def _to_room(self, record: Optional[RoomRecord]) -> Optional[Room]:
        if record is None:
            return None
        room = Room.from_dict(json.loads(record.state))
        room.version = record.version
        return room

    def load(self, room_id: str) -> Optional[Room]:
        record = RoomRecord.query.filter_by(id=room_id).populate_existing().first()
        return self._to_room(record)

    def find_by_code(self, join_code: str) -> Optional[Room]:
        record = (
            RoomRecord.query.filter_by(join_code=join_code)
            .order_by((RoomRecord.status == RoomStatus.FINISHED).asc(), RoomRecord.created_at.desc())
            .populate_existing()
            .first()
        )
        return self._to_room(record)

    def code_in_use(self, join_code: str) -> bool:
        return RoomRecord.query.filter(
            RoomRecord.join_code == join_code,
            RoomRecord.status != RoomStatus.FINISHED,
        ).first() is not None

    def save(self, room: Room, check_version: bool = True) -> None:
        try:
            exists = db.session.query(RoomRecord.id).filter_by(id=room.id).first() is not None
            if not exists:
                if check_version and room.version != 0:
                    raise StaleRoomError(f'room {room.id} no longer exists')
                new_version = 1
                db.session.add(RoomRecord(id=room.id, **self._columns(room, new_version)))
            else:
                query = RoomRecord.query.filter(RoomRecord.id == room.id)
                if check_version:
                    query = query.filter(RoomRecord.version == room.version)
                    new_version = room.version + 1
                else:
                    current = db.session.query(RoomRecord.version).filter_by(id=room.id).scalar()
                    new_version = (current or 0) + 1
                updated = query.update(self._columns(room, new_version), synchronize_session=False)
                if not updated:
                    raise StaleRoomError(f'room {room.id} changed since version {room.version}')
                RoomMember.query.filter_by(room_id=room.id).delete(synchronize_session=False)
            for player in room.members:
                db.session.add(RoomMember(room_id=room.id, user_id=player.user_id, total_score=player.total_score))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        room.version = new_version

    def _columns(self, room: Room, version: int):
        state = room.to_dict()
        state['version'] = version
        return {
            'join_code': room.join_code,
            'status': room.status,
            'host_id': room.host_id,
            'version': version,
            'state': json.dumps(state),
            'created_at': room.created_at,
            'finished_at': room.finished_at,
        }

    def delete(self, room_id: str) -> None:
        try:
            RoomMember.query.filter_by(room_id=room_id).delete(synchronize_session=False)
            RoomRecord.query.filter_by(id=room_id).delete(synchronize_session=False)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def rooms_for_user(self, user_id: str, status: str = None) -> List[Room]:
        query = RoomRecord.query.join(RoomMember).filter(RoomMember.user_id == user_id)
        if status is not None:
            query = query.filter(RoomRecord.status == status)
        return [self._to_room(record) for record in query.populate_existing().all()]
