"""Session engine: the single entry point used by socket handlers and routes.

Every operation that touches a room takes that room's lock, so each room has
one logical writer at a time while different rooms never contend. Timed
steps (countdown deadline, settle delay, auto-submit) are scheduled with the
room's ``session_id`` and re-check it when they fire, so timers left over
from an earlier session or an ended room do nothing.
"""

import logging
import random
from typing import Any, Callable, Dict, List, Optional

from . import lifecycle
from .answers import NO_ANSWER, submit_answer
from .delivery import BackgroundScheduler, InlineScheduler, Outbox, SocketIOEmitter
from .dispatcher import dispatch_next, resend_current
from .registry import SessionStore
from .shuffler import shuffled_indices
from .state import PlayerSession, QuizSnapshot, Room, RoomStatus

QuizLoader = Callable[[str], Optional[QuizSnapshot]]


class SessionEngine:
    def __init__(self, app=None, **kwargs) -> None:
        self.store = SessionStore()
        self.logger = logging.getLogger('livequiz')
        self.outbox: Optional[Outbox] = None
        self.scheduler = InlineScheduler()
        self.quiz_loader: Optional[QuizLoader] = None
        self.rng: Optional[random.Random] = None
        self.start_lead_sec = 4.0
        self.settle_sec = 0.5
        self.auto_submit = False
        self.auto_submit_grace_sec = 2.0
        self.idle_ttl_sec = 7200.0
        self.sweep_interval_sec = 0.0
        self._sweeper_started = False
        self._closed = False
        self.socketio = None
        if app is not None:
            self.init_app(app, **kwargs)

    def init_app(self, app, socketio=None, emitter=None, scheduler=None,
                 quiz_loader: Optional[QuizLoader] = None, rng: Optional[random.Random] = None) -> None:
        cfg = app.config
        self.logger = app.logger
        self.store = SessionStore()
        self._sweeper_started = False
        self._closed = False
        self.start_lead_sec = float(cfg.get('QUIZ_START_LEAD_SEC', 4))
        self.settle_sec = float(cfg.get('QUIZ_SETTLE_SEC', 0.5))
        self.auto_submit = bool(cfg.get('AUTO_SUBMIT_ENABLED', False))
        self.auto_submit_grace_sec = float(cfg.get('AUTO_SUBMIT_GRACE_SEC', 2))
        self.idle_ttl_sec = float(cfg.get('ROOM_IDLE_TTL_SEC', 7200))
        self.sweep_interval_sec = float(cfg.get('ROOM_SWEEP_INTERVAL_SEC', 0))
        self.rng = rng

        if emitter is None and socketio is not None:
            emitter = SocketIOEmitter(socketio, namespace=cfg.get('SOCKETIO_NAMESPACE', '/ws'))
        self.socketio = socketio
        self.outbox = Outbox(emitter, self.store.connections) if emitter is not None else None

        if scheduler is None:
            # Under TESTING timers fire immediately instead of from a background task
            if cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS'):
                scheduler = InlineScheduler()
            elif socketio is not None:
                scheduler = BackgroundScheduler(socketio)
            else:
                scheduler = InlineScheduler()
        self.scheduler = scheduler

        if quiz_loader is None:
            from livequiz.services.quiz_source import load_quiz_for_session
            quiz_loader = load_quiz_for_session
        self.quiz_loader = quiz_loader

        app.extensions['livequiz_sessions'] = self

    # ---- Room registry ----

    def join(self, room_code: str, player_id: str, display_name: str, sid: Optional[str] = None) -> List[Dict[str, Any]]:
        room, player, created = self.store.join(room_code, player_id, display_name)
        with room.lock:
            replaced = None
            if sid is not None:
                replaced = self.store.connections.bind(room_code, player_id, sid)
                if replaced:
                    self.logger.info(f"[rejoin] room={room_code} player={player_id} sid {replaced} -> {sid}")
            if created:
                self.logger.info(f"[join] room={room_code} player={player_id} players={len(room.players)}")
                self._admit_late_joiner(room, player)
            elif replaced and room.released and room.status is RoomStatus.IN_PROGRESS:
                # The new connection never saw the question in flight
                resend_current(room, player, self.outbox)
            players = room.player_list()
            self.outbox.to_room(room_code, 'update_student_list', players)
        self._ensure_sweeper()
        return players

    def _admit_late_joiner(self, room: Room, player: PlayerSession) -> None:
        if room.quiz is None or room.status not in (RoomStatus.STARTING, RoomStatus.IN_PROGRESS):
            return
        player.reset(shuffled_indices(room.quiz.question_count, self.rng))
        if room.released:
            self.logger.info(f"[late-join] room={room.code} player={player.id} dispatching first question")
            self._dispatch(room, player)

    def leave(self, room_code: str, player_id: str) -> bool:
        sid = self.store.connections.unbind(room_code, player_id)
        if sid is not None:
            self.outbox.detach(sid, room_code)
        return self._remove(room_code, player_id, reason='leave')

    def kick(self, room_code: str, target_id: str) -> bool:
        room = self.store.get(room_code)
        if room is None:
            return False
        with room.lock:
            # Resolve the connection before the player disappears
            sid = self.store.connections.unbind(room_code, target_id)
            if sid is not None:
                self.outbox.detach(sid, room_code)
            removed = self._remove(room_code, target_id, reason='kick')
            if sid is not None:
                self.outbox.to_sid(sid, 'you_were_kicked')
            return removed

    def disconnect(self, sid: str) -> List[str]:
        """Remove whatever players this connection was routing for."""
        affected = []
        for room_code, player_id in self.store.connections.members_of(sid):
            self.store.connections.unbind(room_code, player_id)
            if self._remove(room_code, player_id, reason='disconnect'):
                affected.append(room_code)
        return affected

    def _remove(self, room_code: str, player_id: str, reason: str) -> bool:
        room = self.store.get(room_code)
        if room is None:
            return False
        with room.lock:
            if self.store.remove(room_code, player_id) is None:
                self.logger.debug(f"[{reason}-noop] room={room_code} player={player_id} not in room")
                return False
            room.ready.discard(player_id)
            self.logger.info(f"[{reason}] room={room_code} player={player_id} players={len(room.players)}")
            self.outbox.to_room(room_code, 'update_student_list', room.player_list())
            if room.status is RoomStatus.IN_PROGRESS:
                lifecycle.finish_if_complete(room, self.outbox)
            elif room.status is RoomStatus.STARTING and lifecycle.all_ready(room):
                # The one holding everyone back may have been the one who left
                self._begin(room)
            return True

    def end_room(self, room_code: str) -> bool:
        room = self.store.get(room_code)
        if room is None:
            return False
        with room.lock:
            self.store.end_room(room_code)
            self.outbox.to_room(room_code, 'room_closed', {'roomCode': room_code})
            self.logger.info(f"[end-room] room={room_code} players={len(room.players)}")
        return True

    def evict_idle(self, now: Optional[float] = None) -> List[str]:
        evicted = self.store.evict_idle(self.idle_ttl_sec, now=now)
        for code in evicted:
            self.logger.info(f"[evict] room={code} idle>={self.idle_ttl_sec}s")
        return evicted

    def close(self) -> None:
        """Forget every room; pending timers find nothing left to act on."""
        count = len(self.store)
        self._closed = True
        self.store.clear()
        self.logger.info(f"[shutdown] dropped {count} rooms")

    def _ensure_sweeper(self) -> None:
        if self._closed or self._sweeper_started or self.sweep_interval_sec <= 0 or self.socketio is None:
            return
        if isinstance(self.scheduler, InlineScheduler):
            return
        self._sweeper_started = True

        def _sweep():
            while not self._closed:
                self.socketio.sleep(self.sweep_interval_sec)
                if not self._closed:
                    self.evict_idle()

        self.socketio.start_background_task(_sweep)

    # ---- Session lifecycle ----

    def start(self, room_code: str) -> bool:
        quiz = self.quiz_loader(room_code)
        if quiz is None or quiz.question_count == 0:
            self.logger.info(f"[start-skip] room={room_code} quiz missing or empty")
            return False
        room = self.store.get(room_code)
        if room is None:
            self.logger.info(f"[start-skip] room={room_code} no such room")
            return False
        with room.lock:
            if room.status not in lifecycle.STARTABLE:
                self.logger.info(f"[start-skip] room={room_code} already {room.status.value}")
                return False
            session_id = lifecycle.prepare_start(room, quiz, self.store.next_session_id(), self.rng)
            self.store.touch(room)
            self.logger.info(
                f"[start] room={room_code} session={session_id} players={len(room.players)} questions={quiz.question_count}"
            )
            self.outbox.to_room(room_code, 'quiz_starting', {'countdown': self.start_lead_sec})
            self.scheduler.call_later(self.start_lead_sec, self._deadline_reached, room_code, session_id)
        return True

    def client_ready(self, room_code: str, player_id: str) -> bool:
        room = self.store.get(room_code)
        if room is None:
            return False
        with room.lock:
            if lifecycle.mark_ready(room, player_id):
                self.logger.info(f"[ready] room={room_code} all {len(room.players)} players ready")
                return self._begin(room)
        return False

    def _deadline_reached(self, room_code: str, session_id: int) -> None:
        room = self._live_room(room_code, session_id)
        if room is None:
            return
        with room.lock:
            if room.session_id == session_id and room.status is RoomStatus.STARTING:
                self.logger.info(f"[deadline] room={room_code} session={session_id} ready={len(room.ready)}/{len(room.players)}")
                self._begin(room)

    def _begin(self, room: Room) -> bool:
        if not lifecycle.begin(room, self.outbox):
            return False
        self.scheduler.call_later(self.settle_sec, self._dispatch_first, room.code, room.session_id)
        return True

    def _dispatch_first(self, room_code: str, session_id: int) -> None:
        room = self._live_room(room_code, session_id)
        if room is None:
            return
        with room.lock:
            if room.session_id != session_id or room.status is not RoomStatus.IN_PROGRESS or room.released:
                return
            room.released = True
            for player in list(room.players):
                self._dispatch(room, player)

    def _live_room(self, room_code: str, session_id: int) -> Optional[Room]:
        room = self.store.get(room_code)
        if room is None or room.session_id != session_id:
            self.logger.info(f"[timer-abort] room={room_code} session={session_id} stale")
            return None
        return room

    # ---- Dispatch and answers ----

    def _dispatch(self, room: Room, player: PlayerSession) -> Optional[int]:
        question_index = dispatch_next(room, player, self.outbox)
        if question_index is None:
            if room.status is RoomStatus.FINISHED:
                self.logger.info(f"[finish] room={room.code} session={room.session_id} players={len(room.players)}")
            return None
        if self.auto_submit and room.quiz is not None:
            delay = room.quiz.settings.time_per_question + self.auto_submit_grace_sec
            self.scheduler.call_later(
                delay, self._expire, room.code, room.session_id, player.id, player.progress_cursor
            )
        return question_index

    def submit(self, room_code: str, player_id: str, question_index: int, selected_option_index: int) -> bool:
        room = self.store.get(room_code)
        if room is None:
            self.logger.debug(f"[submit-noop] room={room_code} no such room")
            return False
        with room.lock:
            accepted = submit_answer(room, player_id, question_index, selected_option_index, self.outbox, self._dispatch)
            if accepted:
                self.store.touch(room)
            else:
                self.logger.debug(f"[submit-noop] room={room_code} player={player_id} question={question_index} discarded")
            return accepted

    def _expire(self, room_code: str, session_id: int, player_id: str, cursor: int) -> None:
        room = self._live_room(room_code, session_id)
        if room is None:
            return
        with room.lock:
            player = room.find_player(player_id)
            if player is None or player.progress_cursor != cursor or player.answered_current:
                return
            question_index = player.in_flight_question()
            if question_index is None:
                return
            self.logger.info(f"[auto-submit] room={room_code} player={player_id} question={question_index}")
            submit_answer(room, player_id, question_index, NO_ANSWER, self.outbox, self._dispatch)

    # ---- Introspection ----

    def describe(self, room_code: str) -> Optional[Dict[str, Any]]:
        room = self.store.get(room_code)
        if room is None:
            return None
        with room.lock:
            return room.to_dict()
