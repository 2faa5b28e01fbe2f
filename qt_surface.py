"""PySide6 implementations of the scheduler, form and listening-target interfaces."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from loguru import logger

from models import FieldKind, SelectOption

try:
    from PySide6.QtCore import QDate, QEvent, QObject, QTime, QTimer, Signal
    from PySide6.QtWidgets import (
        QAbstractSpinBox,
        QApplication,
        QBoxLayout,
        QComboBox,
        QDateEdit,
        QDoubleSpinBox,
        QFormLayout,
        QHBoxLayout,
        QInputDialog,
        QLabel,
        QLineEdit,
        QMessageBox,
        QPlainTextEdit,
        QPushButton,
        QSpinBox,
        QTextEdit,
        QTimeEdit,
        QToolButton,
        QWidget,
    )
except Exception:  # pragma: no cover
    QDate = QEvent = QTime = QTimer = Signal = None  # type: ignore
    QAbstractSpinBox = QApplication = QBoxLayout = QComboBox = QDateEdit = None  # type: ignore
    QDoubleSpinBox = QFormLayout = QHBoxLayout = QInputDialog = QLabel = QLineEdit = QMessageBox = None  # type: ignore
    QPlainTextEdit = QSpinBox = QTextEdit = QTimeEdit = QToolButton = QWidget = None  # type: ignore
    QObject = object  # type: ignore
    QPushButton = object  # type: ignore

CONTROLS_PROPERTY = "speechControls"
LISTENING_PROPERTY = "speechListening"
EXCLUDE_PROPERTY = "speechExclude"

_LISTENING_STYLE = "border: 2px solid #FF4444;"
_HOST_DIALOGS = tuple(cls for cls in (QInputDialog, QMessageBox) if cls is not None)


def _require_qt() -> None:
    if QTimer is None:
        raise RuntimeError("PySide6 is not installed")


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


class QtTimerHandle:
    def __init__(self, timer: "QTimer", owner: "QtScheduler") -> None:
        self._timer = timer
        self._owner = owner

    def cancel(self) -> None:
        self._timer.stop()
        self._owner._release(self._timer)


class QtScheduler:
    """Single-shot callbacks on the Qt event loop."""

    def __init__(self) -> None:
        _require_qt()
        self._timers: set = set()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> QtTimerHandle:
        timer = QTimer()
        timer.setSingleShot(True)

        def _fire() -> None:
            self._release(timer)
            callback()

        timer.timeout.connect(_fire)
        self._timers.add(timer)
        timer.start(max(0, int(delay_ms)))
        return QtTimerHandle(timer, self)

    def _release(self, timer: "QTimer") -> None:
        self._timers.discard(timer)


class QtEventBridge(QObject):
    """Marshals callables from worker threads onto the thread owning the bridge."""

    if Signal is not None:
        posted = Signal(object)

    def __init__(self) -> None:
        _require_qt()
        super().__init__()
        self.posted.connect(self._run)

    def post(self, callback: Callable[[], None]) -> None:
        self.posted.emit(callback)

    def _run(self, callback: Callable[[], None]) -> None:
        callback()


# ---------------------------------------------------------------------------
# Forms and modals
# ---------------------------------------------------------------------------


class QtFormTarget:
    """Writes values into named child widgets of a dialog."""

    def __init__(self, root: "QWidget") -> None:
        self._root = root

    def _find(self, field_id: str, kinds: tuple) -> Optional["QWidget"]:
        widget = self._root.findChild(QWidget, field_id)
        if widget is None or not isinstance(widget, kinds):
            logger.debug("No {} field named {!r}", "/".join(k.__name__ for k in kinds), field_id)
            return None
        return widget

    def set_text(self, field_id: str, value: str) -> bool:
        widget = self._find(field_id, (QLineEdit, QTextEdit, QPlainTextEdit))
        if widget is None:
            return False
        if isinstance(widget, QLineEdit):
            widget.setText(value)
        else:
            widget.setPlainText(value)
        return True

    def set_number(self, field_id: str, value: float) -> bool:
        widget = self._find(field_id, (QSpinBox, QDoubleSpinBox, QLineEdit))
        if widget is None:
            return False
        if isinstance(widget, (QSpinBox, QDoubleSpinBox)):
            _set_spin_value(widget, value)
        else:
            widget.setText(str(value))
        return True

    def set_date(self, field_id: str, value: str) -> bool:
        widget = self._find(field_id, (QDateEdit,))
        parsed = QDate.fromString(value, "yyyy-MM-dd") if widget is not None else None
        if parsed is None or not parsed.isValid():
            return False
        widget.setDate(parsed)
        return True

    def set_time(self, field_id: str, value: str) -> bool:
        widget = self._find(field_id, (QTimeEdit,))
        parsed = QTime.fromString(value, "HH:mm") if widget is not None else None
        if parsed is None or not parsed.isValid():
            return False
        widget.setTime(parsed)
        return True

    def set_selection(self, field_id: str, value: str) -> bool:
        widget = self._find(field_id, (QComboBox,))
        if widget is None:
            return False
        index = _combo_index(widget, value)
        if index < 0:
            return False
        widget.setCurrentIndex(index)
        return True


def _set_spin_value(widget: "QAbstractSpinBox", value: float) -> None:
    """Write ``value`` clamped to the spin box range."""
    clamped = min(max(value, widget.minimum()), widget.maximum())
    if isinstance(widget, QSpinBox):
        widget.setValue(int(round(clamped)))
    else:
        widget.setValue(float(clamped))


def _combo_index(combo: "QComboBox", value: str) -> int:
    needle = value.lower()
    for index in range(combo.count()):
        data = combo.itemData(index)
        if data is not None and str(data).lower() == needle:
            return index
    for index in range(combo.count()):
        if combo.itemText(index).lower() == needle:
            return index
    return -1


class QtModalSurface:
    """Dialogs registered by modal id, built on first open and reused."""

    def __init__(self, factories: dict[str, Callable[[], "QWidget"]]) -> None:
        self._factories = dict(factories)
        self._dialogs: dict[str, "QWidget"] = {}

    def has_modal(self, modal_id: str) -> bool:
        return modal_id in self._factories

    def open_modal(self, modal_id: str) -> QtFormTarget:
        dialog = self._dialogs.get(modal_id)
        if dialog is None:
            dialog = self._factories[modal_id]()
            self._dialogs[modal_id] = dialog
        dialog.show()
        dialog.raise_()
        dialog.activateWindow()
        return QtFormTarget(dialog)


# ---------------------------------------------------------------------------
# Listening targets
# ---------------------------------------------------------------------------


class MicButton(QPushButton):
    """Push button for voice commands; its caption is the listening indicator."""

    IDLE_TEXT = "🎤 Voice command"
    LISTENING_TEXT = "🔴 Listening..."

    def __init__(self, parent: Optional["QWidget"] = None) -> None:
        _require_qt()
        super().__init__(self.IDLE_TEXT, parent)
        self.setObjectName("voiceCommandButton")
        self.setProperty(EXCLUDE_PROPERTY, True)
        self._listening = False

    def set_listening(self, active: bool) -> None:
        self._listening = active
        self.setText(self.LISTENING_TEXT if active else self.IDLE_TEXT)

    def listening_shown(self) -> bool:
        return self._listening


def field_kind(widget: "QWidget") -> Optional[FieldKind]:
    if isinstance(widget, QDateEdit):
        return FieldKind.DATE
    if isinstance(widget, QTimeEdit):
        return FieldKind.TIME
    if isinstance(widget, (QSpinBox, QDoubleSpinBox)):
        return FieldKind.NUMBER
    if isinstance(widget, QComboBox):
        return FieldKind.SELECT
    if isinstance(widget, (QTextEdit, QPlainTextEdit)):
        return FieldKind.TEXTAREA
    if isinstance(widget, QLineEdit):
        parent = widget.parentWidget()
        if isinstance(parent, (QAbstractSpinBox, QComboBox)):
            return None
        return FieldKind.TEXT
    return None


class QtFieldHandle:
    """Speech controls for one input widget: mic and stop buttons plus a status line."""

    def __init__(self, widget: "QWidget", kind: FieldKind) -> None:
        self.widget = widget
        self.kind = kind
        self.key = widget.objectName() or f"{type(widget).__name__}@{id(widget):x}"
        self._mic: Optional["QToolButton"] = None
        self._stop: Optional["QToolButton"] = None
        self._status: Optional["QLabel"] = None
        self._base_style = widget.styleSheet()

    def has_controls(self) -> bool:
        return bool(self.widget.property(CONTROLS_PROPERTY))

    def attach_controls(self, on_start: Callable[[], None], on_stop: Callable[[], None]) -> None:
        row = QWidget()
        layout = QHBoxLayout(row)
        layout.setContentsMargins(0, 0, 0, 0)
        self._mic = QToolButton(row)
        self._mic.setText("🎤")
        self._mic.setToolTip("Speak to fill this field")
        self._mic.clicked.connect(lambda: on_start())
        self._stop = QToolButton(row)
        self._stop.setText("⏹")
        self._stop.setToolTip("Stop listening")
        self._stop.clicked.connect(lambda: on_stop())
        self._stop.hide()
        self._status = QLabel(row)
        self._status.setStyleSheet("color: #666666; font-size: 11px;")
        layout.addWidget(self._mic)
        layout.addWidget(self._stop)
        layout.addWidget(self._status, 1)

        self.widget.setProperty(CONTROLS_PROPERTY, True)
        if not _insert_after(self.widget, row):
            logger.debug("No supported layout around {}, controls left detached", self.key)

    def current_value(self) -> str:
        widget = self.widget
        if isinstance(widget, QLineEdit):
            return widget.text()
        if isinstance(widget, (QTextEdit, QPlainTextEdit)):
            return widget.toPlainText()
        return ""

    def set_value(self, value: str) -> None:
        widget = self.widget
        if isinstance(widget, QLineEdit):
            widget.setText(value)
        elif isinstance(widget, (QTextEdit, QPlainTextEdit)):
            widget.setPlainText(value)
        elif isinstance(widget, QComboBox):
            index = _combo_index(widget, value)
            if index >= 0:
                widget.setCurrentIndex(index)
        elif isinstance(widget, QDateEdit):
            parsed = QDate.fromString(value, "yyyy-MM-dd")
            if parsed.isValid():
                widget.setDate(parsed)
        elif isinstance(widget, QTimeEdit):
            parsed = QTime.fromString(value, "HH:mm")
            if parsed.isValid():
                widget.setTime(parsed)
        elif isinstance(widget, (QSpinBox, QDoubleSpinBox)):
            _set_spin_value(widget, float(value))

    def options(self) -> list[SelectOption]:
        widget = self.widget
        if not isinstance(widget, QComboBox):
            return []
        result = []
        model = widget.model()
        for index in range(widget.count()):
            data = widget.itemData(index)
            item = model.item(index) if hasattr(model, "item") else None
            result.append(
                SelectOption(
                    value=widget.itemText(index) if data is None else str(data),
                    label=widget.itemText(index),
                    disabled=item is not None and not item.isEnabled(),
                )
            )
        return result

    def set_status(self, message: str) -> None:
        if self._status is not None:
            self._status.setText(message)

    def set_listening(self, active: bool) -> None:
        self.widget.setProperty(LISTENING_PROPERTY, active)
        self.widget.setStyleSheet(self._base_style + _LISTENING_STYLE if active else self._base_style)
        if self._mic is not None and self._stop is not None:
            self._mic.setVisible(not active)
            self._stop.setVisible(active)

    def listening_shown(self) -> bool:
        return bool(self.widget.property(LISTENING_PROPERTY))


def _insert_after(widget: "QWidget", row: "QWidget") -> bool:
    parent = widget.parentWidget()
    layout = parent.layout() if parent is not None else None
    if isinstance(layout, QFormLayout):
        position, _role = layout.getWidgetPosition(widget)
        if position < 0:
            return False
        layout.insertRow(position + 1, "", row)
        return True
    if isinstance(layout, QBoxLayout):
        index = layout.indexOf(widget)
        if index < 0:
            return False
        layout.insertWidget(index + 1, row)
        return True
    return False


# ---------------------------------------------------------------------------
# Form surface
# ---------------------------------------------------------------------------


class _StructureWatcher(QObject):
    def __init__(self, on_change: Callable[[], None]) -> None:
        super().__init__()
        self._on_change = on_change
        self._pending = False

    def eventFilter(self, obj: object, event: object) -> bool:  # noqa: N802
        if event.type() in (QEvent.Show, QEvent.ChildAdded) and not self._pending:
            self._pending = True
            QTimer.singleShot(0, self._flush)
        return False

    def _flush(self) -> None:
        self._pending = False
        self._on_change()


class QtFormSurface:
    """Every eligible input widget across all top-level windows of the app."""

    def __init__(self, app: Optional["QApplication"] = None) -> None:
        _require_qt()
        self._app = app or QApplication.instance()
        self._handles: dict[int, QtFieldHandle] = {}
        self._watcher: Optional[_StructureWatcher] = None

    def eligible_fields(self) -> Iterable[QtFieldHandle]:
        fields = []
        for window in self._app.topLevelWidgets():
            if isinstance(window, _HOST_DIALOGS):
                continue
            for widget in [window, *window.findChildren(QWidget)]:
                if widget.property(EXCLUDE_PROPERTY):
                    continue
                if isinstance(widget, QLineEdit) and widget.isReadOnly():
                    continue
                kind = field_kind(widget)
                if kind is not None:
                    fields.append(self._handle_for(widget, kind))
        return fields

    def _handle_for(self, widget: "QWidget", kind: FieldKind) -> QtFieldHandle:
        key = id(widget)
        handle = self._handles.get(key)
        if handle is None or handle.widget is not widget:
            handle = QtFieldHandle(widget, kind)
            self._handles[key] = handle
            widget.destroyed.connect(lambda *_args, k=key: self._handles.pop(k, None))
        return handle

    def watch(self, on_change: Callable[[], None]) -> None:
        self._watcher = _StructureWatcher(on_change)
        self._app.installEventFilter(self._watcher)
