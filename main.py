"""Application entrypoint: a small Qt window that renders WorkflowController state."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Coroutine, Optional

from analysis_client import HttpAnalysisClient, SimulatedAnalyzer
from config import JsonConfigStore
from errors import WorkflowError
from models import StateKind, ViewModel
from recorder import AudioCaptureSession
from workflow_controller import WorkflowController

try:
    from PySide6 import QtAsyncio
    from PySide6.QtCore import QUrl
    from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer
    from PySide6.QtWidgets import (
        QApplication,
        QFileDialog,
        QHBoxLayout,
        QInputDialog,
        QLabel,
        QMessageBox,
        QPlainTextEdit,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)

STATUS_TEXT = {
    StateKind.IDLE: "Upload or record your speech to get instant feedback.",
    StateKind.RECORDING: "Recording...",
    StateKind.READY_TO_SUBMIT: "Your selected audio is ready.",
    StateKind.ANALYZING: "Analyzing...",
    StateKind.RESULTS: "Your Analysis Results",
}


def format_results(view: ViewModel) -> str:
    """Plain-text rendering of feedback and every series, one line per window."""
    if view.state != StateKind.RESULTS:
        return ""
    lines = [view.feedback_text, ""]
    for name, series in view.time_series.items():
        lines.append(f"{name} ({series.metric})")
        for point in series.points:
            lines.append(f"  {point.time_label}: {point.value:g}")
    return "\n".join(lines)


class MainWindow(QWidget):
    def __init__(self, controller_factory, config_store: JsonConfigStore) -> None:
        super().__init__()
        self.setWindowTitle("SpeakSmart Coach")
        self.config_store = config_store
        self.controller: WorkflowController = controller_factory(
            on_state_change=lambda _from, _to: self.refresh(),
            on_error=self._on_error,
        )
        self._tasks: set[asyncio.Task] = set()

        self.status = QLabel()
        self.record_button = QPushButton("Start Recording")
        self.file_button = QPushButton("Choose File")
        self.play_button = QPushButton("Play")
        self.submit_button = QPushButton("Analyze My Speech")
        self.reset_button = QPushButton("Analyze Another Speech")
        self.settings_button = QPushButton("Analyzer URL...")
        self.results = QPlainTextEdit()
        self.results.setReadOnly(True)

        self.player = QMediaPlayer(self)
        self.audio_output = QAudioOutput(self)
        self.player.setAudioOutput(self.audio_output)

        inputs = QHBoxLayout()
        inputs.addWidget(self.record_button)
        inputs.addWidget(self.file_button)
        inputs.addWidget(self.play_button)
        layout = QVBoxLayout(self)
        layout.addWidget(self.status)
        layout.addLayout(inputs)
        layout.addWidget(self.submit_button)
        layout.addWidget(self.results)
        layout.addWidget(self.reset_button)
        layout.addWidget(self.settings_button)

        self.record_button.clicked.connect(self._toggle_recording)
        self.file_button.clicked.connect(self._choose_file)
        self.play_button.clicked.connect(self._play)
        self.submit_button.clicked.connect(lambda: self._run(self.controller.submit()))
        self.reset_button.clicked.connect(lambda: self._run(self.controller.reset()))
        self.settings_button.clicked.connect(self._set_analyzer_url)
        self.refresh()

    def refresh(self) -> None:
        view = self.controller.view()
        self.status.setText(STATUS_TEXT[view.state])
        self.record_button.setText(
            "Stop Recording" if view.can_stop_recording else "Start Recording"
        )
        self.record_button.setEnabled(view.can_start_recording or view.can_stop_recording)
        self.file_button.setEnabled(view.can_choose_file)
        self.play_button.setEnabled(view.playback_path is not None and not view.can_stop_recording)
        self.submit_button.setEnabled(view.can_submit)
        self.submit_button.setText("Analyzing..." if view.is_busy else "Analyze My Speech")
        self.reset_button.setVisible(view.can_reset)
        self.results.setPlainText(format_results(view))

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def _toggle_recording(self) -> None:
        if self.controller.view().can_stop_recording:
            self._run(self.controller.stop_recording())
        else:
            self._run(self.controller.start_recording())

    def _choose_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Choose File", "", "Audio (*.*)")
        self._run(self.controller.choose_file(path or None))

    def _play(self) -> None:
        view = self.controller.view()
        if view.playback_path is None:
            return
        self.player.setSource(QUrl.fromLocalFile(str(view.playback_path)))
        self.player.play()

    def _set_analyzer_url(self) -> None:
        value, ok = QInputDialog.getText(
            self, "Analyzer", "Analyzer URL (empty uses the built-in demo)",
            text=self.config_store.get_analyzer_url(),
        )
        if not ok:
            return
        self.config_store.set_analyzer_url(value)
        QMessageBox.information(self, "Saved", "Analyzer URL saved. Restart app to apply.")

    def _run(self, coro: Coroutine) -> None:
        task = asyncio.ensure_future(self._guarded(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _guarded(self, coro: Coroutine) -> None:
        try:
            await coro
        except WorkflowError as exc:
            self._on_error(exc.code, exc.message)
        self.refresh()

    def _on_error(self, code: str, message: str) -> None:
        QMessageBox.warning(self, "SpeakSmart Coach", message)

    def closeEvent(self, event) -> None:  # noqa: N802
        self.player.stop()
        self.controller.close()
        super().closeEvent(event)


def build_controller(config_store: JsonConfigStore, **callbacks) -> WorkflowController:
    url = config_store.get_analyzer_url()
    timeout_s = config_store.get_submit_timeout_s()
    analyzer = HttpAnalysisClient(url, timeout_s=timeout_s) if url else SimulatedAnalyzer()
    return WorkflowController(
        capture=AudioCaptureSession(),
        analyzer=analyzer,
        submit_timeout_s=timeout_s,
        **callbacks,
    )


def main(argv: Optional[list] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QApplication(argv if argv is not None else sys.argv)
    config_store = JsonConfigStore()
    window = MainWindow(
        lambda **callbacks: build_controller(config_store, **callbacks),
        config_store,
    )
    window.show()
    QtAsyncio.run(handle_sigint=True)
    window.controller.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
