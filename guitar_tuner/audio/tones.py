"""Synthesis of reference tones and feedback chimes."""

import numpy as np

DEFAULT_SAMPLE_RATE = 44100


def sine_frame(
    frequency: float,
    frame_size: int = 4096,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    amplitude: float = 0.5,
    phase: float = 0.0,
) -> np.ndarray:
    """A steady sine wave block, e.g. to feed the pitch estimator."""
    t = np.arange(frame_size) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t + phase)).astype(np.float32)


def generate_tone(
    frequency: float,
    duration: float = 1.0,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    amplitude: float = 0.1,
    attack: float = 0.01,
) -> np.ndarray:
    """Generate a reference tone with a short attack and exponential release.

    Args:
        frequency: Tone frequency in Hz
        duration: Length in seconds
        sample_rate: Sample rate in Hz
        amplitude: Peak amplitude after the attack
        attack: Linear fade-in time in seconds, avoids a click at the start

    Returns:
        float32 mono samples
    """
    n = max(1, int(round(duration * sample_rate)))
    t = np.arange(n) / sample_rate
    envelope = np.ones(n)

    attack_n = min(n, int(attack * sample_rate))
    if attack_n > 0:
        envelope[:attack_n] = np.linspace(0.0, 1.0, attack_n, endpoint=False)
    # Decay to 1% of the peak by the end of the tone
    release_n = n - attack_n
    if release_n > 0:
        envelope[attack_n:] = np.geomspace(1.0, 0.01, release_n)

    return (amplitude * envelope * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def success_chime(sample_rate: int = DEFAULT_SAMPLE_RATE, amplitude: float = 0.15) -> np.ndarray:
    """Two quick rising beeps (880 Hz then 1175 Hz) played when tuning completes."""
    first = generate_tone(880.0, 0.13, sample_rate, amplitude)
    gap = np.zeros(int(0.03 * sample_rate), dtype=np.float32)
    second = generate_tone(1175.0, 0.14, sample_rate, amplitude)
    return np.concatenate((first, gap, second))
