from __future__ import annotations

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")

from fakes import FakeScheduler  # noqa: E402
from form_binding import FieldFillHandler  # noqa: E402
from models import FieldKind  # noqa: E402
from qt_surface import QtFieldHandle, QtFormSurface, QtFormTarget, _combo_index, field_kind  # noqa: E402


@pytest.fixture(scope="module")
def qapp():  # noqa: ANN201
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app


# ---------------------------------------------------------------
# Number fields
# ---------------------------------------------------------------


def test_spoken_number_beyond_range_is_clamped(qapp) -> None:  # noqa: ANN001
    spin = QtWidgets.QSpinBox()
    spin.setRange(0, 200000)
    handle = QtFieldHandle(spin, FieldKind.NUMBER)

    FieldFillHandler(FakeScheduler()).handle_final(handle, "about 5000000000 steps")

    assert spin.value() == 200000


def test_double_spin_value_is_clamped_to_minimum(qapp) -> None:  # noqa: ANN001
    spin = QtWidgets.QDoubleSpinBox()
    spin.setRange(0.0, 100.0)
    spin.setValue(12.5)

    QtFieldHandle(spin, FieldKind.NUMBER).set_value("-5")

    assert spin.value() == 0.0


def test_form_target_clamps_numbers(qapp) -> None:  # noqa: ANN001
    root = QtWidgets.QWidget()
    spin = QtWidgets.QSpinBox(root)
    spin.setObjectName("steps-count")
    spin.setRange(0, 100000)
    target = QtFormTarget(root)

    assert target.set_number("steps-count", 5_000_000_000) is True
    assert spin.value() == 100000
    assert target.set_number("steps-count", 7500) is True
    assert spin.value() == 7500
    assert target.set_number("workout-duration", 30) is False


# ---------------------------------------------------------------
# Select fields
# ---------------------------------------------------------------


def test_combo_index_prefers_item_data_then_text(qapp) -> None:  # noqa: ANN001
    combo = QtWidgets.QComboBox()
    combo.addItem("Walking", "run")
    combo.addItem("run", "jog")
    combo.addItem("Cycling")

    assert _combo_index(combo, "run") == 0
    assert _combo_index(combo, "JOG") == 1
    assert _combo_index(combo, "cycling") == 2
    assert _combo_index(combo, "swimming") == -1


def test_form_target_selects_by_value(qapp) -> None:  # noqa: ANN001
    root = QtWidgets.QWidget()
    combo = QtWidgets.QComboBox(root)
    combo.setObjectName("meal-category")
    combo.addItem("Select...", "")
    combo.addItem("Dinner", "dinner")
    target = QtFormTarget(root)

    assert target.set_selection("meal-category", "dinner") is True
    assert combo.currentIndex() == 1
    assert target.set_selection("meal-category", "brunch") is False


# ---------------------------------------------------------------
# Field discovery
# ---------------------------------------------------------------


def test_field_kind_skips_inner_line_edits(qapp) -> None:  # noqa: ANN001
    spin = QtWidgets.QSpinBox()
    combo = QtWidgets.QComboBox()
    combo.setEditable(True)

    assert field_kind(spin) == FieldKind.NUMBER
    assert field_kind(combo) == FieldKind.SELECT
    assert field_kind(spin.findChild(QtWidgets.QLineEdit)) is None
    assert field_kind(combo.lineEdit()) is None
    assert field_kind(QtWidgets.QLineEdit()) == FieldKind.TEXT
    assert field_kind(QtWidgets.QPlainTextEdit()) == FieldKind.TEXTAREA


def test_surface_skips_host_input_dialogs(qapp) -> None:  # noqa: ANN001
    window = QtWidgets.QWidget()
    name = QtWidgets.QLineEdit(window)
    prompt = QtWidgets.QInputDialog()

    widgets = [handle.widget for handle in QtFormSurface(qapp).eligible_fields()]

    assert name in widgets
    assert not any(widget.window() is prompt for widget in widgets)
