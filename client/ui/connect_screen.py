"""DuelBoard relay connection screen."""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QPushButton, QLabel, QLineEdit, QGroupBox,
    QFormLayout, QSpinBox,
)

from shared.protocol import DEFAULT_PORT

logger = logging.getLogger("duelboard.client.ui.connect")

LAST_CONNECTION_FILE = Path.home() / ".duelboard" / "last_connection.json"


class ConnectScreenWidget(QWidget):
    connect_requested = Signal(str, int)  # host, port

    def __init__(self, host: str = "", port: int = DEFAULT_PORT, parent=None):
        super().__init__(parent)
        self._setup_ui()
        last = self.get_last_connection()
        if host:
            self.fld_host.setText(host)
            self.fld_port.setValue(port)
        elif last:
            self.fld_host.setText(last[0])
            self.fld_port.setValue(last[1])

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(30, 30, 30, 30)
        layout.setSpacing(20)

        title = QLabel("DuelBoard")
        title.setStyleSheet("font-size: 32px; font-weight: bold; color: #93c5fd;")
        layout.addWidget(title)

        self.subtitle = QLabel("Connect to the scoreboard relay")
        self.subtitle.setStyleSheet("font-size: 14px; color: #888;")
        layout.addWidget(self.subtitle)

        group = QGroupBox("Relay")
        form = QFormLayout(group)
        self.fld_host = QLineEdit()
        self.fld_host.setPlaceholderText("192.168.1.100")
        self.fld_port = QSpinBox()
        self.fld_port.setRange(1, 65535)
        self.fld_port.setValue(DEFAULT_PORT)
        form.addRow("Host:", self.fld_host)
        form.addRow("Port:", self.fld_port)
        self.btn_connect = QPushButton("Connect")
        self.btn_connect.setMinimumHeight(44)
        self.btn_connect.clicked.connect(self._connect_manual)
        form.addRow(self.btn_connect)
        layout.addWidget(group)

        layout.addStretch()

    def set_message(self, text: str) -> None:
        self.subtitle.setText(text)

    def _connect_manual(self) -> None:
        host = self.fld_host.text().strip()
        port = self.fld_port.value()
        if host:
            self._save_connection(host, port)
            self.connect_requested.emit(host, port)

    def _save_connection(self, host: str, port: int) -> None:
        try:
            LAST_CONNECTION_FILE.parent.mkdir(parents=True, exist_ok=True)
            LAST_CONNECTION_FILE.write_text(json.dumps({"last_host": host, "last_port": port}, indent=2))
            logger.info("Saved connection: %s:%d", host, port)
        except OSError as e:
            logger.warning("Failed to save connection: %s", e)

    def get_last_connection(self) -> Optional[tuple[str, int]]:
        if not LAST_CONNECTION_FILE.exists():
            return None
        try:
            data = json.loads(LAST_CONNECTION_FILE.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Failed to load last connection: %s", e)
            return None
        host = data.get("last_host")
        port = data.get("last_port")
        if host and port:
            return host, port
        return None
