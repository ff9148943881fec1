#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Midjourney Prompt (PySide6)
- Assemble a Midjourney /imagine command from a prompt, suffix tags, algorithm, aspect ratio,
  stylize strength, seed and video flag.
- Copies the command to the clipboard on every change (or on demand) and remembers the form
  between runs in a YAML file under the per-user local data directory.
"""
from __future__ import annotations

import logging
import math
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from PySide6.QtCore import Qt, QStandardPaths
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit,
    QTextEdit, QPushButton, QComboBox, QCheckBox, QSpinBox, QDoubleSpinBox, QSlider,
    QFormLayout, QButtonGroup, QToolButton, QScrollArea, QLayout
)

APP_TITLE = "Midjourney Prompt"
APP_VERSION = "1.0.0"
APP_DIR_NAME = "midjourney_prompt"
STATE_FILE_NAME = "prompt.yaml"

STATE_ENV_VAR = "MIDJOURNEY_PROMPT_STATE"
LOG_ENV_VAR = "MIDJOURNEY_PROMPT_LOG"

COMMAND_PREFIX = "/imagine prompt: "

DEFAULT_STYLIZE = 2500
STYLIZE_MIN = 625
STYLIZE_MAX = 60000
STYLIZE_SLIDER_STEPS = 1000

ASPECT_W_MIN, ASPECT_W_MAX = 1, 21
ASPECT_H_MIN, ASPECT_H_MAX = 1, 10
ASPECT_PRESETS: List[Tuple[int, int]] = [
    (1, 1), (1, 2), (1, 3), (2, 3), (3, 2), (3, 4), (4, 3), (16, 9), (21, 9),
]

SEED_MAX = 2**32 - 1

logger = logging.getLogger(__name__)

# ---------- Utilities ----------

def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))

def stylize_to_slider(value: int) -> int:
    """Position of a stylize value on the logarithmic slider."""
    value = clamp(value, STYLIZE_MIN, STYLIZE_MAX)
    ratio = math.log(value / STYLIZE_MIN) / math.log(STYLIZE_MAX / STYLIZE_MIN)
    return round(ratio * STYLIZE_SLIDER_STEPS)

def slider_to_stylize(pos: int) -> int:
    """Stylize value for a logarithmic slider position."""
    pos = clamp(pos, 0, STYLIZE_SLIDER_STEPS)
    value = STYLIZE_MIN * (STYLIZE_MAX / STYLIZE_MIN) ** (pos / STYLIZE_SLIDER_STEPS)
    return clamp(round(value), STYLIZE_MIN, STYLIZE_MAX)

def _int_field(data: Dict[str, Any], key: str) -> int:
    value = data[key]
    # bool is an int subclass; reject it so `true` never becomes 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {value!r}")
    return value

def _bool_field(data: Dict[str, Any], key: str) -> bool:
    value = data[key]
    if not isinstance(value, bool):
        raise TypeError(f"{key} must be a boolean, got {value!r}")
    return value

# ---------- Form state ----------

class Algorithm(str, Enum):
    V3 = "v3"
    TEST = "test"
    TEST_PHOTO = "testphoto"

    @property
    def token(self) -> str:
        return _ALGORITHM_TOKENS[self]

_ALGORITHM_TOKENS = {
    Algorithm.V3: "v3",
    Algorithm.TEST: "test",
    Algorithm.TEST_PHOTO: "testp",
}

@dataclass
class FormState:
    # Transient
    text: str = ""

    # Persisted
    suffixes: List[Tuple[str, bool]] = field(default_factory=lambda: [("realistic", True)])
    algorithm: Algorithm = Algorithm.V3
    aspect_w: int = 1
    aspect_h: int = 1
    stylize: int = DEFAULT_STYLIZE
    video: bool = False
    copy_on_change: bool = True
    use_seed: bool = False
    seed: int = 0

    # Transient
    copied_command: str = ""

    @classmethod
    def default(cls) -> "FormState":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Persisted fields only; `text` and `copied_command` are never written."""
        return {
            "suffixes": [[label, enabled] for label, enabled in self.suffixes],
            "algorithm": self.algorithm.value,
            "aspect_w": self.aspect_w,
            "aspect_h": self.aspect_h,
            "stylize": self.stylize,
            "video": self.video,
            "copy_on_change": self.copy_on_change,
            "use_seed": self.use_seed,
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "FormState":
        """Build a state from a loaded document.

        Raises KeyError, TypeError or ValueError when a persisted field is
        missing or has the wrong shape. Unknown keys are ignored and numbers
        are clamped into their ranges.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected a mapping, got {type(data).__name__}")

        raw_suffixes = data["suffixes"]
        if not isinstance(raw_suffixes, list):
            raise TypeError("suffixes must be a list")
        suffixes = []
        for entry in raw_suffixes:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise ValueError(f"suffix entry must be a [label, enabled] pair, got {entry!r}")
            label, enabled = entry
            if not isinstance(label, str) or not isinstance(enabled, bool):
                raise TypeError(f"suffix entry must be [str, bool], got {entry!r}")
            suffixes.append((label, enabled))

        return cls(
            suffixes=suffixes,
            algorithm=Algorithm(data["algorithm"]),
            aspect_w=clamp(_int_field(data, "aspect_w"), ASPECT_W_MIN, ASPECT_W_MAX),
            aspect_h=clamp(_int_field(data, "aspect_h"), ASPECT_H_MIN, ASPECT_H_MAX),
            stylize=clamp(_int_field(data, "stylize"), STYLIZE_MIN, STYLIZE_MAX),
            video=_bool_field(data, "video"),
            copy_on_change=_bool_field(data, "copy_on_change"),
            use_seed=_bool_field(data, "use_seed"),
            seed=clamp(_int_field(data, "seed"), 0, SEED_MAX),
        )

# ---------- Command assembly ----------

class CommandBuilder:
    def __init__(self, state: FormState):
        self.s = state

    def _prompt_clause(self) -> str:
        return f"{COMMAND_PREFIX}{self.s.text.strip()}"

    def _suffix_clause(self) -> str:
        return "".join(
            f", {label.strip()}"
            for label, enabled in self.s.suffixes
            if enabled and label.strip()
        )

    def _stylize_clause(self) -> str:
        if self.s.stylize == DEFAULT_STYLIZE:
            return ""
        return f" --stylize {self.s.stylize}"

    def _aspect_clause(self) -> str:
        if (self.s.aspect_w, self.s.aspect_h) == (1, 1):
            return ""
        return f" --ar {self.s.aspect_w}:{self.s.aspect_h}"

    def _video_clause(self) -> str:
        return " --video" if self.s.video else ""

    def _seed_clause(self) -> str:
        return f" --sameseed {self.s.seed}" if self.s.use_seed else ""

    def _algorithm_clause(self) -> str:
        if self.s.algorithm == Algorithm.V3:
            return ""
        return f" --{self.s.algorithm.token}"

    def build(self) -> str:
        # Flag order matters to tools that consume the command.
        return "".join([
            self._prompt_clause(),
            self._suffix_clause(),
            self._stylize_clause(),
            self._aspect_clause(),
            self._video_clause(),
            self._seed_clause(),
            self._algorithm_clause(),
        ])

def synthesize(state: FormState) -> str:
    return CommandBuilder(state).build()

# ---------- Persistence ----------

def state_path() -> Path:
    override = os.environ.get(STATE_ENV_VAR)
    if override:
        return Path(override).expanduser()
    base = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.GenericDataLocation)
    if not base:
        base = str(Path.home() / ".local" / "share")
    return Path(base) / APP_DIR_NAME / STATE_FILE_NAME

def load_state(path: Optional[Path] = None) -> FormState:
    """Read the saved form, falling back to the default on any failure."""
    path = Path(path) if path is not None else state_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        state = FormState.from_dict(data)
    except FileNotFoundError:
        logger.info("No saved state at %s, starting from defaults", path)
        return FormState.default()
    except (OSError, yaml.YAMLError, ValueError, TypeError, KeyError) as exc:
        logger.warning("Discarding unreadable state file %s: %s", path, exc, exc_info=True)
        return FormState.default()
    logger.info("Loaded state from %s", path)
    return state

def save_state(state: FormState, path: Optional[Path] = None) -> bool:
    """Write the persisted fields. Returns False instead of raising on failure."""
    path = Path(path) if path is not None else state_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(state.to_dict(), f)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not save state to %s: %s", path, exc, exc_info=True)
        return False
    logger.info("Saved state to %s", path)
    return True

# ---------- Clipboard ----------

def copy_command(command: str, set_text: Callable[[str], Any]) -> str:
    """Put the command on the clipboard and return the status line to show."""
    try:
        set_text(command)
    except Exception as e:
        return f"error copying command: {e}"
    return f"copied command:\n{command}"

def _qt_set_clipboard_text(text: str) -> None:
    QApplication.clipboard().setText(text)

# ---------- GUI ----------

def _clear_layout(layout: QLayout):
    while layout.count():
        item = layout.takeAt(0)
        w = item.widget()
        if w is not None:
            w.deleteLater()
        elif item.layout() is not None:
            _clear_layout(item.layout())

class MainWindow(QMainWindow):
    def __init__(self, state: Optional[FormState] = None, state_file: Optional[Path] = None,
                 set_clipboard_text: Optional[Callable[[str], Any]] = None):
        super().__init__()
        self.setWindowTitle(APP_TITLE)
        self.resize(600, 600)
        self.setMinimumSize(600, 400)

        self.state = state if state is not None else FormState.default()
        self.state_file = state_file
        self._set_clipboard_text = set_clipboard_text or _qt_set_clipboard_text
        self._suffix_rows: List[Tuple[QLineEdit, QCheckBox]] = []
        self._syncing = False

        self._init_ui()
        self._apply_state(self.state)
        self._last_command = synthesize(self.state)
        self._wire_actions()
        self._refresh()

    # ---- UI construction ----

    def _init_ui(self):
        central = QWidget(self)
        self.setCentralWidget(central)
        main_layout = QVBoxLayout(central)

        # Settings, collapsed by default
        self.settings_toggle = QToolButton()
        self.settings_toggle.setText("settings")
        self.settings_toggle.setCheckable(True)
        self.settings_toggle.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
        self.settings_toggle.setArrowType(Qt.ArrowType.RightArrow)
        self.settings_body = QWidget()
        settings_layout = QFormLayout(self.settings_body)
        cot_hover_text = "copy command to clipboard when changed"
        self.copy_on_change_chk = QCheckBox()
        self.copy_on_change_chk.setToolTip(cot_hover_text)
        cot_label = QLabel("copy on change")
        cot_label.setToolTip(cot_hover_text)
        settings_layout.addRow(cot_label, self.copy_on_change_chk)
        self.settings_body.setVisible(False)
        main_layout.addWidget(self.settings_toggle)
        main_layout.addWidget(self.settings_body)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        form_widget = QWidget()
        layout = QFormLayout(form_widget)
        scroll.setWidget(form_widget)
        main_layout.addWidget(scroll, stretch=1)

        # Prompt
        self.prompt_edit = QTextEdit()
        self.prompt_edit.setAcceptRichText(False)
        self.prompt_edit.setPlaceholderText("Describe the image...")
        layout.addRow("prompt", self.prompt_edit)

        # Algorithm
        algo_row = QHBoxLayout()
        self.algo_group = QButtonGroup(self)
        self.algo_group.setExclusive(True)
        self.algo_buttons: Dict[Algorithm, QPushButton] = {}
        for i, algo in enumerate(Algorithm):
            btn = QPushButton(algo.token)
            btn.setCheckable(True)
            self.algo_group.addButton(btn, i)
            self.algo_buttons[algo] = btn
            algo_row.addWidget(btn)
        algo_row.addStretch(1)
        layout.addRow("algorithm", algo_row)

        # Aspect
        aspect_row = QHBoxLayout()
        self.aspect_w_spin = QSpinBox()
        self.aspect_w_spin.setRange(ASPECT_W_MIN, ASPECT_W_MAX)
        self.aspect_h_spin = QSpinBox()
        self.aspect_h_spin.setRange(ASPECT_H_MIN, ASPECT_H_MAX)
        self.aspect_preset_combo = QComboBox()
        self.aspect_preset_combo.addItem("preset")
        self.aspect_preset_combo.addItems([f"{w}:{h}" for w, h in ASPECT_PRESETS])
        aspect_row.addWidget(self.aspect_w_spin)
        aspect_row.addWidget(QLabel(":"))
        aspect_row.addWidget(self.aspect_h_spin)
        aspect_row.addWidget(self.aspect_preset_combo)
        aspect_row.addStretch(1)
        layout.addRow("aspect", aspect_row)

        # Stylize
        stylize_row = QHBoxLayout()
        self.stylize_slider = QSlider(Qt.Orientation.Horizontal)
        self.stylize_slider.setRange(0, STYLIZE_SLIDER_STEPS)
        self.stylize_spin = QSpinBox()
        self.stylize_spin.setRange(STYLIZE_MIN, STYLIZE_MAX)
        self.stylize_reset_btn = QPushButton("reset")
        stylize_row.addWidget(self.stylize_slider, stretch=1)
        stylize_row.addWidget(self.stylize_spin)
        stylize_row.addWidget(self.stylize_reset_btn)
        layout.addRow("stylize", stylize_row)

        # Seed
        seed_row = QHBoxLayout()
        self.seed_chk = QCheckBox()
        self.seed_spin = QDoubleSpinBox()
        self.seed_spin.setDecimals(0)
        self.seed_spin.setRange(0, SEED_MAX)
        seed_row.addWidget(self.seed_chk)
        seed_row.addWidget(self.seed_spin)
        seed_row.addStretch(1)
        layout.addRow("seed", seed_row)

        # Video
        self.video_chk = QCheckBox()
        layout.addRow("video", self.video_chk)

        # Suffixes
        suffix_col = QVBoxLayout()
        self.suffix_box = QVBoxLayout()
        self.add_suffix_btn = QPushButton("+")
        self.add_suffix_btn.setFixedWidth(32)
        suffix_col.addLayout(self.suffix_box)
        suffix_col.addWidget(self.add_suffix_btn)
        layout.addRow("suffixes", suffix_col)

        # Command preview and copy controls
        self.output = QTextEdit()
        self.output.setReadOnly(True)
        self.output.setFixedHeight(70)
        main_layout.addWidget(self.output)

        out_bar = QHBoxLayout()
        self.copy_btn = QPushButton("copy")
        self.clear_btn = QPushButton("Reset")
        out_bar.addWidget(self.copy_btn)
        out_bar.addStretch(1)
        out_bar.addWidget(self.clear_btn)
        main_layout.addLayout(out_bar)

        self.copied_label = QLabel()
        self.copied_label.setWordWrap(True)
        self.copied_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        main_layout.addWidget(self.copied_label)

        self.statusBar().showMessage("Ready")

    def _rebuild_suffix_rows(self):
        _clear_layout(self.suffix_box)
        self._suffix_rows = []
        for i, (label, enabled) in enumerate(self.state.suffixes):
            row = QHBoxLayout()
            edit = QLineEdit(label)
            edit.setFixedWidth(160)
            chk = QCheckBox()
            chk.setChecked(enabled)
            remove_btn = QPushButton("-")
            remove_btn.setFixedWidth(32)
            edit.textChanged.connect(self._on_changed)
            chk.toggled.connect(self._on_changed)
            remove_btn.clicked.connect(lambda _=False, i=i: self._remove_suffix(i))
            row.addWidget(edit)
            row.addWidget(chk)
            row.addWidget(remove_btn)
            row.addStretch(1)
            self.suffix_box.addLayout(row)
            self._suffix_rows.append((edit, chk))

    # ---- Event wiring ----

    def _wire_actions(self):
        self.settings_toggle.toggled.connect(self._toggle_settings)
        self.copy_on_change_chk.toggled.connect(self._on_changed)

        self.prompt_edit.textChanged.connect(self._on_changed)
        self.algo_group.idClicked.connect(self._on_changed)
        self.aspect_w_spin.valueChanged.connect(self._on_changed)
        self.aspect_h_spin.valueChanged.connect(self._on_changed)
        self.aspect_preset_combo.currentIndexChanged.connect(self._apply_aspect_preset)
        self.stylize_slider.valueChanged.connect(self._on_stylize_slider)
        self.stylize_spin.valueChanged.connect(self._on_stylize_spin)
        self.stylize_reset_btn.clicked.connect(self._reset_stylize)
        self.seed_chk.toggled.connect(self._on_changed)
        self.seed_spin.valueChanged.connect(self._on_changed)
        self.video_chk.toggled.connect(self._on_changed)
        self.add_suffix_btn.clicked.connect(self._add_suffix)

        self.copy_btn.clicked.connect(self._copy_clicked)
        self.clear_btn.clicked.connect(self._reset_all)

    # ---- Data marshaling ----

    def _collect_state(self):
        s = self.state
        s.text = self.prompt_edit.toPlainText()
        s.copy_on_change = self.copy_on_change_chk.isChecked()
        s.algorithm = list(Algorithm)[max(self.algo_group.checkedId(), 0)]
        s.aspect_w = self.aspect_w_spin.value()
        s.aspect_h = self.aspect_h_spin.value()
        s.stylize = self.stylize_spin.value()
        s.use_seed = self.seed_chk.isChecked()
        s.seed = clamp(int(round(self.seed_spin.value())), 0, SEED_MAX)
        s.video = self.video_chk.isChecked()
        s.suffixes = [(edit.text(), chk.isChecked()) for edit, chk in self._suffix_rows]

    def _apply_state(self, s: FormState):
        self._syncing = True
        try:
            self.prompt_edit.setPlainText(s.text)
            self.copy_on_change_chk.setChecked(s.copy_on_change)
            self.algo_buttons[s.algorithm].setChecked(True)
            self.aspect_w_spin.setValue(s.aspect_w)
            self.aspect_h_spin.setValue(s.aspect_h)
            self.stylize_spin.setValue(s.stylize)
            self.stylize_slider.setValue(stylize_to_slider(s.stylize))
            self.seed_chk.setChecked(s.use_seed)
            self.seed_spin.setValue(s.seed)
            self.video_chk.setChecked(s.video)
            self._rebuild_suffix_rows()
        finally:
            self._syncing = False

    def _refresh(self):
        s = self.state
        command = synthesize(s)
        self.output.setPlainText(command)
        self.stylize_reset_btn.setVisible(s.stylize != DEFAULT_STYLIZE)
        self.seed_spin.setVisible(s.use_seed)
        self.copy_btn.setVisible(not s.copy_on_change)
        self.copy_btn.setEnabled(bool(s.text.strip()))
        self.copied_label.setText(s.copied_command)

    # ---- Actions ----

    def _on_changed(self, *_):
        if self._syncing:
            return
        self._collect_state()
        command = synthesize(self.state)
        changed = command != self._last_command
        self._last_command = command
        if changed and self.state.copy_on_change:
            self._copy(command)
        self._refresh()

    def _copy(self, command: str):
        if not self.state.text.strip():
            return
        self.state.copied_command = copy_command(command, self._set_clipboard_text)
        if self.state.copied_command.startswith("error"):
            self.statusBar().showMessage("Copy failed.")
        else:
            self.statusBar().showMessage("Copied to clipboard.")

    def _copy_clicked(self):
        self._collect_state()
        self._copy(synthesize(self.state))
        self._refresh()

    def _toggle_settings(self, checked: bool):
        self.settings_toggle.setArrowType(Qt.ArrowType.DownArrow if checked else Qt.ArrowType.RightArrow)
        self.settings_body.setVisible(checked)

    def _apply_aspect_preset(self, index: int):
        if index <= 0:
            return
        w, h = ASPECT_PRESETS[index - 1]
        self._syncing = True
        try:
            self.aspect_w_spin.setValue(w)
            self.aspect_h_spin.setValue(h)
            self.aspect_preset_combo.setCurrentIndex(0)
        finally:
            self._syncing = False
        self._on_changed()

    def _on_stylize_slider(self, pos: int):
        self.stylize_spin.blockSignals(True)
        self.stylize_spin.setValue(slider_to_stylize(pos))
        self.stylize_spin.blockSignals(False)
        self._on_changed()

    def _on_stylize_spin(self, value: int):
        self.stylize_slider.blockSignals(True)
        self.stylize_slider.setValue(stylize_to_slider(value))
        self.stylize_slider.blockSignals(False)
        self._on_changed()

    def _reset_stylize(self):
        self.stylize_spin.setValue(DEFAULT_STYLIZE)

    def _add_suffix(self):
        self._collect_state()
        self.state.suffixes.append(("", True))
        self._rebuild_suffix_rows()
        self._on_changed()

    def _remove_suffix(self, index: int):
        self._collect_state()
        del self.state.suffixes[index]
        self._rebuild_suffix_rows()
        self._on_changed()

    def _reset_all(self):
        self.state = FormState.default()
        self._apply_state(self.state)
        self._on_changed()
        self.statusBar().showMessage("Reset.")

    def closeEvent(self, event: QCloseEvent):
        self._collect_state()
        if not save_state(self.state, self.state_file):
            logger.warning("Closing without saving the form state")
        event.accept()

def _configure_logging():
    level = os.environ.get(LOG_ENV_VAR, "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def main():
    _configure_logging()
    app = QApplication(sys.argv)
    path = state_path()
    win = MainWindow(load_state(path), path)
    win.show()
    sys.exit(app.exec())

if __name__ == "__main__":
    main()
