"""Application entrypoint."""

from __future__ import annotations

import sys

from loguru import logger

from config import JsonConfigStore
from dispatcher import ACTIVITY_MODAL, HABIT_MODAL, MEAL_MODAL, SLEEP_MODAL, STEPS_MODAL, CommandDispatcher
from engine import DashscopeSpeechEngine
from form_binding import FormBindingAdapter
from hotkey import GlobalHotkeyAdapter
from models import SessionState
from overlay import ToastOverlay
from qt_surface import MicButton, QtEventBridge, QtFormSurface, QtModalSurface, QtScheduler
from session_controller import RecognitionSessionController
from tracker_dialogs import DIALOG_BUILDERS

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import (
        QApplication,
        QInputDialog,
        QLabel,
        QMainWindow,
        QMenu,
        QMessageBox,
        QPushButton,
        QSystemTrayIcon,
        QVBoxLayout,
        QWidget,
    )
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"       # grey
ICON_LISTENING = "#FF4444"  # red
ICON_STARTING = "#FFC107"   # amber
ICON_RECOVERING = "#FF8800"  # orange

TRAY_STATES = {
    SessionState.IDLE.value: (ICON_IDLE, "Ready"),
    SessionState.STARTING.value: (ICON_STARTING, "Starting..."),
    SessionState.LISTENING.value: (ICON_LISTENING, "Listening..."),
    SessionState.RECOVERING.value: (ICON_RECOVERING, "Recovering..."),
}

DIALOG_BUTTONS = [
    (ACTIVITY_MODAL, "Add workout"),
    (MEAL_MODAL, "Add meal"),
    (SLEEP_MODAL, "Log sleep"),
    (HABIT_MODAL, "Add habit"),
    (STEPS_MODAL, "Log steps"),
]


def setup_logging(config_store: JsonConfigStore) -> None:
    logger.remove()
    level = config_store.get_log_level()
    logger.add(sys.stderr, level=level)
    logger.add(
        config_store.directory / "fitvoice.log",
        level=level,
        rotation="1 MB",
        retention=3,
        encoding="utf-8",
    )


class UIBridge(QObject):
    state_signal = Signal(str, str)  # from_state, to_state
    toggle_signal = Signal()


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        setup_logging(self.config_store)

        self.overlay = ToastOverlay()
        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.toggle_signal.connect(self._toggle_command)
        self.events = QtEventBridge()
        self.scheduler = QtScheduler()

        self.controller = RecognitionSessionController(
            engine_factory=self._create_engine,
            scheduler=self.scheduler,
            notifier=self.overlay,
            policy=self.config_store.get_recovery_policy(),
            inactivity_timeout_ms=self.config_store.get_inactivity_timeout_ms(),
            lang=self.config_store.get_lang(),
            on_state_change=self._on_state_change,
        )
        self.modals = QtModalSurface(DIALOG_BUILDERS)
        self.dispatcher = CommandDispatcher(self.controller, self.modals, self.overlay)
        self.form_binding = FormBindingAdapter(
            self.controller,
            QtFormSurface(self.app),
            self.overlay,
            self.scheduler,
            weights=self.config_store.get_match_weights(),
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

        self.window = self._build_window()
        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Fitness Voice: Ready")
        self._setup_menu()
        self.tray.show()

    def _create_engine(self) -> DashscopeSpeechEngine:
        return DashscopeSpeechEngine(api_key=self.config_store.get_api_key(), post=self.events.post)

    def _build_window(self) -> QMainWindow:
        window = QMainWindow()
        window.setWindowTitle("Fitness Tracker")
        central = QWidget(window)
        layout = QVBoxLayout(central)

        hint = QLabel('Say "log a running workout for 30 minutes" or "add a breakfast meal".')
        hint.setWordWrap(True)
        layout.addWidget(hint)

        self.mic_button = MicButton(central)
        self.mic_button.clicked.connect(self._toggle_command)
        layout.addWidget(self.mic_button)

        for modal_id, caption in DIALOG_BUTTONS:
            button = QPushButton(caption, central)
            button.clicked.connect(lambda _checked=False, m=modal_id: self.modals.open_modal(m))
            layout.addWidget(button)

        window.setCentralWidget(central)
        return window

    def _setup_menu(self) -> None:
        menu = QMenu()

        show_action = QAction("Show Tracker", menu)
        show_action.triggered.connect(self.window.show)
        menu.addAction(show_action)

        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        hotkey_action = QAction("Set Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        self.controller.enable_speech()
        QMessageBox.information(None, "Saved", "API Key saved. It applies to the next recording.")

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(None, "Hotkey", "Use pynput key format, e.g. Key.f9")
        if not ok or not value:
            return
        self.config_store.set_hotkey(value)
        QMessageBox.information(None, "Saved", "Hotkey saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Callbacks (may run on worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        color, text = TRAY_STATES.get(to_state, (ICON_IDLE, "Ready"))
        self.tray.setIcon(_create_icon(color))
        self.tray.setToolTip(f"Fitness Voice: {text}")

    def _on_hotkey_toggle(self) -> None:
        self.ui.toggle_signal.emit()

    def _toggle_command(self) -> None:
        self.dispatcher.toggle_listening(self.mic_button)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        self.window.show()
        self.form_binding.start()
        try:
            self.hotkey.start(on_toggle=self._on_hotkey_toggle)
        except Exception as exc:
            logger.warning("Hotkey disabled: {}", exc)
            self.overlay.show_toast(f"Hotkey disabled: {exc}")
        logger.info("Fitness voice entry ready (hotkey {})", self.hotkey.hotkey_name)
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.stop_listening()
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
