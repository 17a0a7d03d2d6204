"""DuelBoard client main window."""
from __future__ import annotations
import asyncio
import logging
from typing import Optional

from PySide6.QtCore import Qt, Signal, QObject
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QMainWindow, QStackedWidget, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QSpinBox, QStatusBar, QGridLayout,
)

from client.session import MatchSession
from client.ui.connect_screen import ConnectScreenWidget
from client.ui.team_panel import TeamPanel, TEAM_COLORS
from client.ws_store import WebSocketStore
from shared.config import ScoreboardConfig
from shared.match import MatchDocument, TEAMS
from shared.match_timer import format_clock

logger = logging.getLogger("duelboard.client.ui")


class _Signaler(QObject):
    snapshot_received = Signal(object)
    connection_changed = Signal(bool)
    tick = Signal(int)


class ScoreboardWindow(QMainWindow):
    """
    Renders the mirrored match and turns button presses into mutations.
    Store callbacks arrive on the asyncio thread and cross over through
    Qt signals, and so do the session ticker's 1 s countdown ticks.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, config: ScoreboardConfig,
                 host: str = "", port: Optional[int] = None):
        super().__init__()
        self.loop = loop
        self.config = config
        self._signaler = _Signaler()
        self.store = WebSocketStore(loop, sync_interval_ms=config.store.sync_interval_ms)
        self.store.on_connection_change = self._signaler.connection_changed.emit
        self.session = MatchSession(
            self.store,
            key=config.store.key,
            default_seconds=config.match.default_duration_seconds,
            defaults=config.match.default_document(),
            on_snapshot=self._signaler.snapshot_received.emit,
            on_tick=self._signaler.tick.emit,
        )

        self.setWindowTitle("DuelBoard")
        self.resize(900, 700)
        self.setStyleSheet("QMainWindow, QWidget { background-color: #111827; color: white; }")

        self.stack = QStackedWidget()
        self.setCentralWidget(self.stack)

        self.connect_screen = ConnectScreenWidget(host, port or config.store.port, self)
        self.connect_screen.connect_requested.connect(self._on_connect_requested)
        self.stack.addWidget(self.connect_screen)

        self.board = QWidget()
        self._setup_board()
        self.stack.addWidget(self.board)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.status_bar.showMessage("Not connected")

        self._signaler.snapshot_received.connect(self._on_snapshot)
        self._signaler.connection_changed.connect(self._on_connection_changed)
        self._signaler.tick.connect(self._on_tick)

        if host:
            self._on_connect_requested(host, port or config.store.port)

    def _setup_board(self) -> None:
        layout = QVBoxLayout(self.board)

        title = QLabel(self.config.match.title)
        title.setAlignment(Qt.AlignCenter)
        title.setStyleSheet("font-size: 28px; font-weight: bold; color: #93c5fd;")
        layout.addWidget(title)

        # Points to win, running badge, 2v2 / 3v3
        info_row = QHBoxLayout()
        info_row.addWidget(QLabel("Points to Win:"))
        self.spin_points = QSpinBox()
        self.spin_points.setRange(1, 999)
        self.spin_points.editingFinished.connect(self._on_points_edited)
        info_row.addWidget(self.spin_points)
        info_row.addStretch()
        self.btn_mode2 = QPushButton("2v2")
        self.btn_mode2.clicked.connect(lambda: self.session.sync.set_roster_size(2))
        self.btn_mode3 = QPushButton("3v3")
        self.btn_mode3.clicked.connect(lambda: self.session.sync.set_roster_size(3))
        info_row.addWidget(self.btn_mode2)
        info_row.addWidget(self.btn_mode3)
        info_row.addStretch()
        self.lbl_state = QLabel("Paused")
        info_row.addWidget(self.lbl_state)
        layout.addLayout(info_row)

        # Team totals
        totals_row = QHBoxLayout()
        self.lbl_totals = {}
        for i, team in enumerate(TEAMS):
            if i:
                vs = QLabel("VS")
                vs.setStyleSheet("font-size: 22px;")
                totals_row.addWidget(vs, alignment=Qt.AlignCenter)
            lbl = QLabel(f"TEAM {team}\n0")
            lbl.setAlignment(Qt.AlignCenter)
            lbl.setStyleSheet(f"font-size: 30px; font-weight: bold; color: {TEAM_COLORS[team]};")
            self.lbl_totals[team] = lbl
            totals_row.addWidget(lbl)
        layout.addLayout(totals_row)

        # Countdown
        caption = QLabel("TIME REMAINING")
        caption.setAlignment(Qt.AlignCenter)
        layout.addWidget(caption)
        self.lbl_time = QLabel(format_clock(self.config.match.default_duration_seconds))
        self.lbl_time.setAlignment(Qt.AlignCenter)
        font = QFont()
        font.setPointSize(40)
        font.setBold(True)
        self.lbl_time.setFont(font)
        self.lbl_time.setStyleSheet("color: #facc15;")
        layout.addWidget(self.lbl_time)

        # Timer / score controls
        controls = QHBoxLayout()
        self.btn_toggle = QPushButton("Resume Match")
        self.btn_toggle.setMinimumHeight(44)
        self.btn_toggle.clicked.connect(self.session.timer.toggle)
        self.btn_reset_timer = QPushButton("Reset Timer")
        self.btn_reset_timer.setMinimumHeight(44)
        self.btn_reset_timer.setStyleSheet("background-color: #ca8a04; font-weight: bold;")
        self.btn_reset_timer.clicked.connect(self.session.timer.reset)
        self.btn_reset_scores = QPushButton("Reset Scores")
        self.btn_reset_scores.setMinimumHeight(44)
        self.btn_reset_scores.setStyleSheet("background-color: #dc2626; font-weight: bold;")
        self.btn_reset_scores.clicked.connect(self.session.sync.reset_scores)
        for btn in (self.btn_toggle, self.btn_reset_timer, self.btn_reset_scores):
            controls.addWidget(btn)
        layout.addLayout(controls)

        # Rosters
        grid = QGridLayout()
        self.panels = {}
        for col, team in enumerate(TEAMS):
            panel = TeamPanel(team, self.session.sync)
            self.panels[team] = panel
            grid.addWidget(panel, 0, col)
        layout.addLayout(grid)
        layout.addStretch()

    # ---- Connection ----

    def _on_connect_requested(self, host: str, port: int) -> None:
        self.connect_screen.set_message(f"Connecting to {host}:{port}...")
        self.status_bar.showMessage(f"Connecting to {host}:{port}...")
        asyncio.run_coroutine_threadsafe(self.store.connect(host, port), self.loop)

    def _on_connection_changed(self, connected: bool) -> None:
        if connected:
            # The board appears with the first snapshot; until then there is
            # nothing to edit
            self.status_bar.showMessage("Connected; waiting for match state")
            self.loop.call_soon_threadsafe(self._start_session)
        else:
            # Keep showing the last mirror; the board stays up if we had one
            self.status_bar.showMessage("Disconnected; showing last known state")
            if self.session.sync.snapshot is None:
                self.connect_screen.set_message("Connection failed")
                self.stack.setCurrentWidget(self.connect_screen)

    def _start_session(self) -> None:
        # Runs on the asyncio thread, which owns the session and its ticker
        self.session.open()
        self.session.start_ticker()

    # ---- Rendering ----

    def _on_snapshot(self, doc: MatchDocument) -> None:
        if self.stack.currentWidget() is not self.board:
            self.stack.setCurrentWidget(self.board)
            self.status_bar.showMessage("Connected")
        if not self.spin_points.hasFocus():
            self.spin_points.setValue(doc.points_to_win)
        for team in TEAMS:
            self.panels[team].update_from(doc)
            self.lbl_totals[team].setText(f"TEAM {team}\n{doc.team_total(team)}")
        for size, btn in ((2, self.btn_mode2), (3, self.btn_mode3)):
            color = "#2563eb" if doc.active_roster_size == size else "#4b5563"
            btn.setStyleSheet(f"background-color: {color}; padding: 4px 16px;")
        self._render_timer()

    def _on_tick(self, remaining: int) -> None:
        self._render_timer(remaining)

    def _render_timer(self, remaining: Optional[int] = None) -> None:
        paused = self.session.timer.is_paused
        if remaining is None:
            remaining = self.session.timer.remaining_seconds()
        self.lbl_time.setText(format_clock(remaining))
        self.lbl_state.setText("Paused" if paused else "Running")
        badge = "#ea580c" if paused else "#16a34a"
        self.lbl_state.setStyleSheet(f"background-color: {badge}; padding: 2px 8px; border-radius: 4px;")
        self.btn_toggle.setText("Resume Match" if paused else "Pause Match")
        blocked = paused and not self.session.timer.can_resume
        self.btn_toggle.setEnabled(not blocked)
        self.btn_toggle.setToolTip(
            "Paused before this screen joined. Resume from a screen that saw the pause, or reset the timer."
            if blocked else ""
        )
        self.btn_toggle.setStyleSheet(f"background-color: {'#16a34a' if paused else '#ea580c'}; font-weight: bold;")

    def _on_points_edited(self) -> None:
        doc = self.session.sync.snapshot
        if doc is not None and doc.points_to_win != self.spin_points.value():
            self.session.sync.set_points_to_win(self.spin_points.value())

    def closeEvent(self, event) -> None:
        self.loop.call_soon_threadsafe(self.session.close)
        asyncio.run_coroutine_threadsafe(self.store.disconnect(), self.loop)
        super().closeEvent(event)
