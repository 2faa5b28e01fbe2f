"""Toast overlay shown at the top of the primary screen."""

from __future__ import annotations

from models import Severity

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

TOAST_COLORS = {
    Severity.INFO: ("white", "rgba(30,60,110,200)"),
    Severity.SUCCESS: ("white", "rgba(25,110,60,210)"),
    Severity.WARNING: ("#1A1A1A", "rgba(255,193,7,225)"),
    Severity.ERROR: ("white", "rgba(180,40,40,225)"),
}
TOAST_DURATION_MS = {
    Severity.INFO: 3000,
    Severity.SUCCESS: 4000,
    Severity.WARNING: 5000,
    Severity.ERROR: 5000,
}


def toast_style(severity: Severity) -> str:
    color, background = TOAST_COLORS.get(severity, TOAST_COLORS[Severity.INFO])
    return f"color: {color}; font-size: 16px; padding: 14px; background: {background}; border-radius: 12px;"


class ToastOverlay(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool)
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setAttribute(Qt.WA_ShowWithoutActivating, True)
        self.setFixedWidth(520)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setStyleSheet(toast_style(Severity.INFO))

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def _center_top(self) -> None:
        """Position the window at the top center of the primary screen."""
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40
        self.move(x, y)

    def show_toast(self, message: str, severity: Severity = Severity.INFO) -> None:
        """Replace the current toast and hide it after a severity-dependent delay."""
        self._cancel_hide_timer()
        self._label.setStyleSheet(toast_style(severity))
        self._label.setText(message)
        self._center_top()
        self.show()
        self.hide_with_delay(TOAST_DURATION_MS.get(severity, 3000))

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        self._hide_timer = QTimer()
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self.hide)
        self._hide_timer.start(delay_ms)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
