"""Shared fixtures: generated PDFs, images and WAV audio, plus a Flask client."""

import io
import wave

import numpy as np
import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


def write_pdf(path, pages=3, text="Page"):
    c = canvas.Canvas(str(path), pagesize=letter)
    for i in range(1, pages + 1):
        c.setFont("Helvetica", 14)
        c.drawString(72, 700, f"{text} {i}")
        c.showPage()
    c.save()
    return str(path)


def write_image(path, size=(200, 100), mode="RGB", color=(200, 30, 30), fmt=None):
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    Image.new(mode, size, color).save(str(path), fmt)
    return str(path)


def wav_bytes(frames=800, channels=1, rate=8000, sampwidth=2):
    t = np.arange(frames) / rate
    tone = 0.5 * np.sin(2 * np.pi * 440 * t)
    data = np.repeat(tone.reshape(-1, 1), channels, axis=1)

    if sampwidth == 1:
        raw = np.round(data * 127 + 128).astype(np.uint8).tobytes()
    elif sampwidth == 2:
        raw = np.round(data * 32767).astype("<i2").tobytes()
    else:
        raw = np.round(data * 2147483647).astype("<i4").tobytes()

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sampwidth)
        wf.setframerate(rate)
        wf.writeframes(raw)
    return buf.getvalue()


@pytest.fixture
def output_folder(tmp_path):
    folder = tmp_path / "outputs"
    folder.mkdir()
    return str(folder)


@pytest.fixture
def sample_pdf(tmp_path):
    return write_pdf(tmp_path / "report.pdf", pages=3)


@pytest.fixture
def sample_image(tmp_path):
    return write_image(tmp_path / "photo.png")


@pytest.fixture
def sample_wav(tmp_path):
    path = tmp_path / "tone.wav"
    path.write_bytes(wav_bytes(channels=2))
    return str(path)


@pytest.fixture
def client(tmp_path):
    from app import app

    uploads = tmp_path / "uploads"
    outputs = tmp_path / "outputs"
    uploads.mkdir(exist_ok=True)
    outputs.mkdir(exist_ok=True)

    app.config.update(
        TESTING=True,
        UPLOAD_FOLDER=str(uploads),
        OUTPUT_FOLDER=str(outputs),
    )
    with app.test_client() as c:
        yield c
