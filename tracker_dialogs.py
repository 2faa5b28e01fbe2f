"""Tracker entry dialogs: workout, meal, sleep, habit and steps."""

from __future__ import annotations

from typing import Callable, Optional

from command_parsers import HABIT_CATEGORIES, MEAL_CATEGORIES, WORKOUT_TYPES
from dispatcher import ACTIVITY_MODAL, HABIT_MODAL, MEAL_MODAL, SLEEP_MODAL, STEPS_MODAL

try:
    from PySide6.QtCore import QDate, QTime
    from PySide6.QtWidgets import (
        QComboBox,
        QDateEdit,
        QDialog,
        QDialogButtonBox,
        QDoubleSpinBox,
        QFormLayout,
        QLineEdit,
        QSpinBox,
        QTextEdit,
        QTimeEdit,
        QWidget,
    )
except Exception:  # pragma: no cover
    QDate = QTime = None  # type: ignore
    QComboBox = QDateEdit = QDialogButtonBox = QDoubleSpinBox = QFormLayout = None  # type: ignore
    QLineEdit = QSpinBox = QTextEdit = QTimeEdit = QWidget = None  # type: ignore
    QDialog = object  # type: ignore

SLEEP_QUALITY_LABELS = ["Terrible", "Poor", "Okay", "Good", "Excellent"]
FREQUENCY_UNITS = ["daily", "weekly"]


class TrackerDialog(QDialog):
    """Form dialog whose inputs are addressed by object name."""

    def __init__(self, modal_id: str, title: str, parent: Optional["QWidget"] = None) -> None:
        if QFormLayout is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__(parent)
        self.setObjectName(modal_id)
        self.setWindowTitle(title)
        self.setMinimumWidth(420)
        self._form = QFormLayout(self)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel, self)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        self._buttons = buttons

    def finish(self) -> "TrackerDialog":
        self._form.addRow(self._buttons)
        return self

    def line(self, field_id: str, label: str) -> "TrackerDialog":
        widget = QLineEdit(self)
        widget.setObjectName(field_id)
        self._form.addRow(label, widget)
        return self

    def text(self, field_id: str, label: str) -> "TrackerDialog":
        widget = QTextEdit(self)
        widget.setObjectName(field_id)
        widget.setFixedHeight(64)
        self._form.addRow(label, widget)
        return self

    def integer(self, field_id: str, label: str, maximum: int = 100000) -> "TrackerDialog":
        widget = QSpinBox(self)
        widget.setObjectName(field_id)
        widget.setRange(0, maximum)
        self._form.addRow(label, widget)
        return self

    def decimal(self, field_id: str, label: str, maximum: float = 1000.0) -> "TrackerDialog":
        widget = QDoubleSpinBox(self)
        widget.setObjectName(field_id)
        widget.setRange(0.0, maximum)
        widget.setDecimals(2)
        self._form.addRow(label, widget)
        return self

    def choice(self, field_id: str, label: str, options: list[tuple[str, str]]) -> "TrackerDialog":
        widget = QComboBox(self)
        widget.setObjectName(field_id)
        widget.addItem("Select...", "")
        for value, caption in options:
            widget.addItem(caption, value)
        self._form.addRow(label, widget)
        return self

    def time(self, field_id: str, label: str, default: str) -> "TrackerDialog":
        widget = QTimeEdit(QTime.fromString(default, "HH:mm"), self)
        widget.setObjectName(field_id)
        widget.setDisplayFormat("HH:mm")
        self._form.addRow(label, widget)
        return self

    def date(self, field_id: str, label: str) -> "TrackerDialog":
        widget = QDateEdit(QDate.currentDate(), self)
        widget.setObjectName(field_id)
        widget.setCalendarPopup(True)
        widget.setDisplayFormat("yyyy-MM-dd")
        self._form.addRow(label, widget)
        return self


def _titled(values: list[str]) -> list[tuple[str, str]]:
    return [(value, value.title()) for value in values]


def build_workout_dialog(parent: Optional["QWidget"] = None) -> TrackerDialog:
    return (
        TrackerDialog(ACTIVITY_MODAL, "Add Workout", parent)
        .line("workout-name", "Name")
        .choice("workout-type", "Type", _titled(WORKOUT_TYPES))
        .integer("workout-duration", "Duration (min)", 1440)
        .integer("workout-calories", "Calories")
        .decimal("workout-distance", "Distance (km)")
        .date("workout-date", "Date")
        .finish()
    )


def build_meal_dialog(parent: Optional["QWidget"] = None) -> TrackerDialog:
    return (
        TrackerDialog(MEAL_MODAL, "Add Meal", parent)
        .line("meal-name", "Name")
        .text("meal-description", "Description")
        .choice("meal-category", "Category", _titled(MEAL_CATEGORIES))
        .integer("meal-calories", "Calories")
        .integer("meal-protein", "Protein (g)", 1000)
        .integer("meal-carbs", "Carbs (g)", 1000)
        .integer("meal-fat", "Fat (g)", 1000)
        .finish()
    )


def build_sleep_dialog(parent: Optional["QWidget"] = None) -> TrackerDialog:
    quality = [(str(rating), f"{rating} - {label}") for rating, label in enumerate(SLEEP_QUALITY_LABELS, start=1)]
    return (
        TrackerDialog(SLEEP_MODAL, "Log Sleep", parent)
        .time("sleep-start", "Went to bed", "22:00")
        .time("sleep-end", "Woke up", "06:00")
        .choice("sleep-quality", "Quality", quality)
        .text("sleep-notes", "Notes")
        .finish()
    )


def build_habit_dialog(parent: Optional["QWidget"] = None) -> TrackerDialog:
    return (
        TrackerDialog(HABIT_MODAL, "Add Habit", parent)
        .line("habit-name", "Name")
        .text("habit-description", "Description")
        .integer("habit-frequency", "Frequency", 100)
        .choice("habit-frequency-unit", "Per", _titled(FREQUENCY_UNITS))
        .choice("habit-category", "Category", _titled(HABIT_CATEGORIES))
        .line("habit-trigger", "Trigger")
        .line("habit-alternative", "Alternative")
        .finish()
    )


def build_steps_dialog(parent: Optional["QWidget"] = None) -> TrackerDialog:
    return (
        TrackerDialog(STEPS_MODAL, "Log Steps", parent)
        .integer("steps-count", "Steps", 200000)
        .date("steps-date", "Date")
        .finish()
    )


DIALOG_BUILDERS: dict[str, Callable[..., TrackerDialog]] = {
    ACTIVITY_MODAL: build_workout_dialog,
    MEAL_MODAL: build_meal_dialog,
    SLEEP_MODAL: build_sleep_dialog,
    HABIT_MODAL: build_habit_dialog,
    STEPS_MODAL: build_steps_dialog,
}
