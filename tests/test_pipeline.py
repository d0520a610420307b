"""Tests for the render pipeline."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from tts_cli.config import RenderConfig, RenderRequest
from tts_cli.errors import AudioIOError, OutputError, RenderError, SynthesisError
from tts_cli.output import AudioFormat, DeviceTarget, FileTarget
from tts_cli.pcm import PcmBuffer
from tts_cli.pipeline import RenderPipeline, render

BUFFER = PcmBuffer(b"\x00\x01" * 1000, sample_rate=16025, bits_per_sample=16, channels=1)


@patch("tts_cli.pipeline.dispatch")
@patch("tts_cli.pipeline.Synthesizer")
class TestRenderPipeline:
    def test_normalize_synthesize_dispatch(
        self, mock_synth_cls: MagicMock, mock_dispatch: MagicMock
    ) -> None:
        mock_synth_cls.return_value.synthesize.return_value = BUFFER
        config = RenderConfig(voice_name="Zira")

        with patch("tts_cli.pipeline.normalize", return_value="normalized") as norm:
            RenderPipeline().render(RenderRequest(text="Hi {NOW}", config=config))

        norm.assert_called_once_with("Hi {NOW}", "")
        mock_synth_cls.assert_called_once_with(config)
        mock_synth_cls.return_value.synthesize.assert_called_once_with("normalized")
        mock_dispatch.assert_called_once_with(BUFFER, DeviceTarget())

    def test_tokens_expanded_before_synthesis(
        self, mock_synth_cls: MagicMock, mock_dispatch: MagicMock
    ) -> None:
        mock_synth_cls.return_value.synthesize.return_value = BUFFER
        config = RenderConfig(date_time_format="%Y")

        render(RenderRequest(text="Year {now}", config=config))

        spoken = mock_synth_cls.return_value.synthesize.call_args.args[0]
        assert spoken.startswith("Year ") and spoken[5:].isdigit()

    def test_file_target(self, mock_synth_cls: MagicMock, mock_dispatch: MagicMock) -> None:
        mock_synth_cls.return_value.synthesize.return_value = BUFFER

        render(RenderRequest(text="Hi", config=RenderConfig(output_path="speech.MP3")))

        mock_dispatch.assert_called_once_with(
            BUFFER, FileTarget(path=Path("speech.MP3"), format=AudioFormat.MP3)
        )

    def test_invalid_extension_fails_before_synthesis(
        self, mock_synth_cls: MagicMock, mock_dispatch: MagicMock, tmp_path: Path
    ) -> None:
        out = tmp_path / "out.ogg"
        request = RenderRequest(text="Hi", config=RenderConfig(output_path=str(out)))

        with pytest.raises(OutputError):
            render(request)

        mock_synth_cls.assert_not_called()
        mock_dispatch.assert_not_called()
        assert not out.exists()

    def test_synthesis_error_propagates(
        self, mock_synth_cls: MagicMock, mock_dispatch: MagicMock
    ) -> None:
        mock_synth_cls.return_value.synthesize.side_effect = SynthesisError("unknown voice")

        with pytest.raises(SynthesisError, match="unknown voice"):
            render(RenderRequest(text="Hi"))
        mock_dispatch.assert_not_called()

    def test_io_error_propagates(self, mock_synth_cls: MagicMock, mock_dispatch: MagicMock) -> None:
        mock_synth_cls.return_value.synthesize.return_value = BUFFER
        mock_dispatch.side_effect = AudioIOError("disk full")

        with pytest.raises(AudioIOError, match="disk full"):
            render(RenderRequest(text="Hi"))

    def test_stray_os_error_wrapped(
        self, mock_synth_cls: MagicMock, mock_dispatch: MagicMock
    ) -> None:
        mock_synth_cls.return_value.synthesize.return_value = BUFFER
        mock_dispatch.side_effect = PermissionError("denied")

        with pytest.raises(AudioIOError, match="denied") as excinfo:
            render(RenderRequest(text="Hi"))
        assert isinstance(excinfo.value, RenderError)
        assert isinstance(excinfo.value.__cause__, PermissionError)

    def test_no_retry(self, mock_synth_cls: MagicMock, mock_dispatch: MagicMock) -> None:
        mock_synth_cls.return_value.synthesize.side_effect = SynthesisError("boom")

        with pytest.raises(SynthesisError):
            render(RenderRequest(text="Hi"))
        assert mock_synth_cls.return_value.synthesize.call_count == 1


@patch("tts_cli.synthesizer.pyttsx3")
def test_render_to_wav_end_to_end(mock_pyttsx3: MagicMock, tmp_path: Path) -> None:
    """Real normalizer, adapter and dispatcher with a fake engine."""
    native = PcmBuffer(b"\x10\x00" * 16025, sample_rate=16025, bits_per_sample=16, channels=1)
    engine = MagicMock()
    engine.getProperty.side_effect = {"voices": [], "rate": 200}.__getitem__
    engine.save_to_file.side_effect = lambda text, filename: setattr(engine, "target", filename)
    engine.runAndWait.side_effect = lambda: native.write_wav(Path(engine.target))
    mock_pyttsx3.init.return_value = engine

    out = tmp_path / "hello.wav"
    render(RenderRequest(text="Hello {COMPUTERNAME}", config=RenderConfig(output_path=str(out))))

    assert PcmBuffer.from_wav(out) == native
    assert "{COMPUTERNAME}" not in engine.save_to_file.call_args.args[0]
