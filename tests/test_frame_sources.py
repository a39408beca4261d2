import numpy as np
import pytest
import soundfile as sf

from guitar_tuner.audio.frame_sources import ArrayFrameSource, WavFileFrameSource
from guitar_tuner.audio.tones import generate_tone, sine_frame, success_chime

SAMPLE_RATE = 44100


def test_array_source_frames_and_pads():
    signal = np.arange(10000, dtype=np.float32)
    source = ArrayFrameSource(signal, SAMPLE_RATE, frame_size=4096)
    frames = []
    while (frame := source.next_frame()) is not None:
        frames.append(frame)

    assert len(frames) == 3
    assert all(len(frame) == 4096 for frame in frames)
    assert frames[1].samples[0] == 4096
    # Final partial frame is zero padded
    assert frames[2].samples[10000 - 8192 - 1] == 9999
    assert not frames[2].samples[10000 - 8192 :].any()
    assert source.sample_rate == SAMPLE_RATE


def test_array_source_hop_and_close():
    source = ArrayFrameSource(np.zeros(8192), SAMPLE_RATE, frame_size=4096, hop_size=2048)
    assert source.next_frame() is not None
    assert source.next_frame() is not None
    source.close()
    assert source.next_frame() is None


def test_array_source_mixes_channels():
    stereo = np.column_stack((np.ones(4096), np.zeros(4096)))
    frame = ArrayFrameSource(stereo, SAMPLE_RATE).next_frame()
    assert frame.samples.ndim == 1
    assert np.allclose(frame.samples, 0.5)


def test_array_source_rejects_bad_frame_size():
    with pytest.raises(ValueError):
        ArrayFrameSource(np.zeros(10), SAMPLE_RATE, frame_size=0)


@pytest.mark.parametrize("hop_size", [0, -1, -4096])
def test_array_source_rejects_bad_hop_size(hop_size):
    with pytest.raises(ValueError):
        ArrayFrameSource(np.zeros(8192), SAMPLE_RATE, frame_size=4096, hop_size=hop_size)


def test_wav_source(tmp_path):
    path = tmp_path / "a2.wav"
    sf.write(str(path), sine_frame(110.0, 10000, SAMPLE_RATE), SAMPLE_RATE)

    with WavFileFrameSource(str(path), frame_size=4096) as source:
        assert source.sample_rate == SAMPLE_RATE
        frames = []
        while (frame := source.next_frame()) is not None:
            frames.append(frame)
    assert len(frames) == 3
    assert all(frame.is_well_formed() for frame in frames)
    assert source.next_frame() is None


def test_wav_source_stereo_and_gain(tmp_path):
    path = tmp_path / "stereo.wav"
    data = np.column_stack((np.full(4096, 0.2), np.full(4096, 0.4)))
    sf.write(str(path), data, SAMPLE_RATE, subtype="FLOAT")

    with WavFileFrameSource(str(path), gain=2.0) as source:
        frame = source.next_frame()
    assert np.allclose(frame.samples, 0.6, atol=1e-6)


def test_wav_source_loop(tmp_path):
    path = tmp_path / "short.wav"
    sf.write(str(path), np.zeros(4096), SAMPLE_RATE)

    source = WavFileFrameSource(str(path), loop=True)
    for _ in range(5):
        assert source.next_frame() is not None
    source.close()
    assert source.next_frame() is None


def test_generate_tone_envelope():
    tone = generate_tone(440.0, duration=0.5, amplitude=0.2)
    assert tone.dtype == np.float32
    assert len(tone) == SAMPLE_RATE // 2
    assert abs(tone[0]) < 1e-6
    assert np.max(np.abs(tone)) <= 0.2 + 1e-6
    # Decays towards the end
    assert np.max(np.abs(tone[-1000:])) < np.max(np.abs(tone[441:1441]))


def test_success_chime_length():
    chime = success_chime()
    expected = int(round(0.13 * SAMPLE_RATE)) + int(0.03 * SAMPLE_RATE) + int(round(0.14 * SAMPLE_RATE))
    assert len(chime) == expected
