"""DuelBoard team roster panel."""
from __future__ import annotations
import logging

from PySide6.QtWidgets import (
    QGroupBox, QVBoxLayout, QHBoxLayout, QLineEdit, QPushButton, QLabel, QWidget,
)

from client.synchronizer import StateSynchronizer
from shared.match import MatchDocument, placeholder_name

logger = logging.getLogger("duelboard.client.ui.team")

TEAM_COLORS = {"A": "#60a5fa", "B": "#f87171"}
TEAM_BACKGROUNDS = {"A": "rgba(30, 58, 138, 0.5)", "B": "rgba(127, 29, 29, 0.5)"}


class _PlayerRow(QWidget):
    def __init__(self, panel: "TeamPanel", index: int):
        super().__init__(panel)
        self.panel = panel
        self.index = index
        row = QHBoxLayout(self)
        row.setContentsMargins(0, 2, 0, 2)

        self.fld_name = QLineEdit()
        self.fld_name.setPlaceholderText(placeholder_name(index + 1))
        self.fld_name.setStyleSheet("background: #1f2937; color: white; padding: 2px 6px;")
        self.fld_name.editingFinished.connect(self._on_name_edited)
        row.addWidget(self.fld_name, stretch=1)

        self.btn_minus = self._small_button("-", "#dc2626")
        self.btn_minus.clicked.connect(lambda: self.panel.sync.decrement_score(self.panel.team, self.index))
        self.btn_zero = self._small_button("0", "#4b5563")
        self.btn_zero.clicked.connect(lambda: self.panel.sync.zero_score(self.panel.team, self.index))
        self.btn_plus = self._small_button("+", "#16a34a")
        self.btn_plus.clicked.connect(lambda: self.panel.sync.increment_score(self.panel.team, self.index))
        for btn in (self.btn_minus, self.btn_zero, self.btn_plus):
            row.addWidget(btn)

        self.lbl_score = QLabel("0")
        self.lbl_score.setMinimumWidth(32)
        self.lbl_score.setStyleSheet("color: white; font-weight: bold;")
        row.addWidget(self.lbl_score)

    @staticmethod
    def _small_button(text: str, color: str) -> QPushButton:
        btn = QPushButton(text)
        btn.setFixedSize(28, 28)
        btn.setStyleSheet(f"background-color: {color}; color: white; font-weight: bold;")
        return btn

    def _on_name_edited(self) -> None:
        doc = self.panel.sync.snapshot
        name = self.fld_name.text()
        if doc is None or doc.roster(self.panel.team)[self.index].name == name:
            return
        self.panel.sync.set_player_name(self.panel.team, self.index, name)

    def show_player(self, name: str, score: int) -> None:
        # Don't fight the operator while they type
        if not self.fld_name.hasFocus() and self.fld_name.text() != name:
            self.fld_name.setText(name)
        self.lbl_score.setText(str(score))


class TeamPanel(QGroupBox):
    """Active roster of one team with per-player score buttons and the team total."""

    def __init__(self, team: str, sync: StateSynchronizer, parent=None):
        super().__init__(f"TEAM {team}", parent)
        self.team = team
        self.sync = sync
        self._rows: list[_PlayerRow] = []
        self.setStyleSheet(
            f"QGroupBox {{ background: {TEAM_BACKGROUNDS[team]}; border-radius: 8px; padding: 12px; }}"
            f"QGroupBox::title {{ color: {TEAM_COLORS[team]}; font-size: 18px; font-weight: bold; }}"
        )
        self._layout = QVBoxLayout(self)
        self._rows_layout = QVBoxLayout()
        self._layout.addLayout(self._rows_layout)
        self.lbl_total = QLabel("TEAM TOTAL: 0")
        self.lbl_total.setStyleSheet("color: white; font-size: 16px; font-weight: bold;")
        self._layout.addWidget(self.lbl_total)

    def update_from(self, doc: MatchDocument) -> None:
        active = doc.active_roster(self.team)
        while len(self._rows) < len(active):
            row = _PlayerRow(self, len(self._rows))
            self._rows.append(row)
            self._rows_layout.addWidget(row)
        for i, row in enumerate(self._rows):
            if i < len(active):
                row.show_player(active[i].name, active[i].score)
                row.show()
            else:
                row.hide()
        self.lbl_total.setText(f"TEAM TOTAL: {doc.team_total(self.team)}")

