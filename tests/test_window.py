# tests/test_window.py
import pytest

from midjourney_prompt import (
    ASPECT_PRESETS,
    Algorithm,
    DEFAULT_STYLIZE,
    FormState,
    MainWindow,
    load_state,
    stylize_to_slider,
)


@pytest.fixture
def clipboard():
    return []


@pytest.fixture
def window(qapp, tmp_path, clipboard):
    win = MainWindow(FormState.default(), tmp_path / "prompt.yaml", set_clipboard_text=clipboard.append)
    yield win
    win.deleteLater()


def test_initial_preview(window):
    assert window.output.toPlainText() == "/imagine prompt: , realistic"
    assert window.copy_btn.isHidden()
    assert window.stylize_reset_btn.isHidden()
    assert window.seed_spin.isHidden()
    assert window.stylize_slider.value() == stylize_to_slider(DEFAULT_STYLIZE)


def test_copy_on_change_copies_each_effective_change(window, clipboard):
    window.prompt_edit.setPlainText("a cat")
    assert clipboard == ["/imagine prompt: a cat, realistic"]

    window.video_chk.setChecked(True)
    assert clipboard[-1] == "/imagine prompt: a cat, realistic --video"
    assert len(clipboard) == 2
    assert window.state.copied_command == "copied command:\n/imagine prompt: a cat, realistic --video"
    assert window.copied_label.text() == window.state.copied_command


def test_settings_toggle_without_command_change_does_not_copy(window, clipboard):
    window.prompt_edit.setPlainText("a cat")
    window.settings_toggle.setChecked(True)
    assert not window.settings_body.isHidden()
    assert len(clipboard) == 1


def test_empty_prompt_never_copies(window, clipboard):
    window.video_chk.setChecked(True)
    window.aspect_w_spin.setValue(3)
    assert clipboard == []
    assert window.output.toPlainText() == "/imagine prompt: , realistic --ar 3:1 --video"


def test_aspect_preset_copies_once(window, clipboard):
    window.prompt_edit.setPlainText("a cat")
    index = ASPECT_PRESETS.index((16, 9)) + 1
    window.aspect_preset_combo.setCurrentIndex(index)
    assert (window.state.aspect_w, window.state.aspect_h) == (16, 9)
    assert clipboard[1:] == ["/imagine prompt: a cat, realistic --ar 16:9"]
    assert window.aspect_preset_combo.currentIndex() == 0


def test_manual_copy_when_copy_on_change_off(window, clipboard):
    window.copy_on_change_chk.setChecked(False)
    assert not window.copy_btn.isHidden()
    assert not window.copy_btn.isEnabled()

    window.prompt_edit.setPlainText("a cat")
    window.video_chk.setChecked(True)
    assert clipboard == []
    assert window.copy_btn.isEnabled()

    window.copy_btn.click()
    assert clipboard == ["/imagine prompt: a cat, realistic --video"]


def test_clipboard_error_is_shown(qapp, tmp_path):
    def broken(text):
        raise RuntimeError("clipboard unavailable")

    win = MainWindow(FormState.default(), tmp_path / "prompt.yaml", set_clipboard_text=broken)
    win.prompt_edit.setPlainText("a cat")
    assert win.state.copied_command == "error copying command: clipboard unavailable"
    assert win.copied_label.text() == "error copying command: clipboard unavailable"
    win.deleteLater()


def test_stylize_spin_and_reset(window):
    window.stylize_spin.setValue(5000)
    assert window.state.stylize == 5000
    assert window.stylize_slider.value() == stylize_to_slider(5000)
    assert not window.stylize_reset_btn.isHidden()
    assert window.output.toPlainText().endswith(" --stylize 5000")

    window.stylize_reset_btn.click()
    assert window.state.stylize == DEFAULT_STYLIZE
    assert window.stylize_reset_btn.isHidden()
    assert "--stylize" not in window.output.toPlainText()


def test_stylize_slider_moves_spin(window):
    window.stylize_slider.setValue(0)
    assert window.stylize_spin.value() == 625
    assert window.state.stylize == 625


def test_seed_field_follows_checkbox(window):
    window.seed_chk.setChecked(True)
    assert not window.seed_spin.isHidden()
    window.seed_spin.setValue(42)
    assert window.output.toPlainText().endswith(" --sameseed 42")

    window.seed_chk.setChecked(False)
    assert window.seed_spin.isHidden()
    assert "--sameseed" not in window.output.toPlainText()


def test_algorithm_buttons(window):
    window.algo_buttons[Algorithm.TEST_PHOTO].click()
    assert window.state.algorithm == Algorithm.TEST_PHOTO
    assert window.output.toPlainText().endswith(" --testp")

    window.algo_buttons[Algorithm.V3].click()
    assert window.state.algorithm == Algorithm.V3
    assert "--" not in window.output.toPlainText()


def test_add_and_remove_suffixes(window):
    window.add_suffix_btn.click()
    assert window.state.suffixes == [("realistic", True), ("", True)]

    edit, chk = window._suffix_rows[1]
    edit.setText("cinematic")
    assert window.output.toPlainText() == "/imagine prompt: , realistic, cinematic"

    first_edit, first_chk = window._suffix_rows[0]
    first_chk.setChecked(False)
    assert window.output.toPlainText() == "/imagine prompt: , cinematic"

    window._remove_suffix(0)
    assert window.state.suffixes == [("cinematic", True)]
    assert len(window._suffix_rows) == 1


def test_reset_restores_defaults(window):
    window.prompt_edit.setPlainText("a cat")
    window.video_chk.setChecked(True)
    window.aspect_w_spin.setValue(4)
    window.clear_btn.click()
    assert window.state == FormState.default()
    assert window.output.toPlainText() == "/imagine prompt: , realistic"


def test_window_shows_loaded_state(qapp, tmp_path, clipboard):
    state = FormState(
        suffixes=[("moody", False)],
        algorithm=Algorithm.TEST,
        aspect_w=2,
        aspect_h=3,
        copy_on_change=False,
    )
    win = MainWindow(state, tmp_path / "prompt.yaml", set_clipboard_text=clipboard.append)
    assert win.algo_buttons[Algorithm.TEST].isChecked()
    assert (win.aspect_w_spin.value(), win.aspect_h_spin.value()) == (2, 3)
    assert not win.copy_on_change_chk.isChecked()
    assert win.output.toPlainText() == "/imagine prompt:  --ar 2:3 --test"
    assert clipboard == []
    win.deleteLater()


def test_close_saves_state(qapp, tmp_path, clipboard):
    path = tmp_path / "saved" / "prompt.yaml"
    win = MainWindow(FormState.default(), path, set_clipboard_text=clipboard.append)
    win.show()
    win.prompt_edit.setPlainText("a cat")
    win.video_chk.setChecked(True)
    win.aspect_h_spin.setValue(7)
    win.close()

    loaded = load_state(path)
    assert loaded.video is True
    assert loaded.aspect_h == 7
    assert loaded.text == ""
