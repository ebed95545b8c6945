import asyncio
import io
import zipfile

import fitz
from PIL import Image

from gradescan.models import FileInput
from gradescan.services.file_processing import (
    correct_rotation,
    expand_uploads,
    extract_zip_files,
    is_pdf,
    pdf_first_page_to_jpeg,
    prepare_page_image,
)


def _zip(members):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def _pdf(pages=1):
    doc = fitz.open()
    for n in range(pages):
        doc.new_page(width=200, height=100).insert_text((20, 50), f"Page {n + 1}")
    data = doc.tobytes()
    doc.close()
    return data


def _jpeg_with_orientation(orientation):
    img = Image.new("RGB", (40, 20), (255, 255, 255))
    exif = Image.Exif()
    exif[0x0112] = orientation
    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", exif=exif.tobytes())
    return buffer.getvalue()


def test_is_pdf():
    assert is_pdf(b"%PDF-1.7\n...")
    assert not is_pdf(b"\xff\xd8\xff\xe0")


def test_zip_members_filtered():
    data = _zip({
        "scans/jane_page1.png": b"one",
        "scans/jane_page2.JPG": b"two",
        "__MACOSX/scans/._jane_page1.png": b"meta",
        "scans/.hidden.png": b"hidden",
        "scans/notes.txt": b"text",
    })
    files = extract_zip_files(data)
    assert [(f.file_name, f.raw_bytes) for f in files] == [
        ("scans/jane_page1.png", b"one"), ("scans/jane_page2.JPG", b"two"),
    ]


def test_bad_zip_yields_nothing():
    assert extract_zip_files(b"not a zip") == []


def test_expand_uploads():
    files = expand_uploads([
        FileInput(file_name="batch.zip", raw_bytes=_zip({"a.png": b"a"})),
        FileInput(file_name="b.png", raw_bytes=b"b"),
    ])
    assert [f.file_name for f in files] == ["a.png", "b.png"]


def test_rotation_left_alone_without_orientation():
    assert correct_rotation(b"not an image") == b"not an image"
    upright = _jpeg_with_orientation(1)
    assert correct_rotation(upright) == upright


def test_rotation_applied():
    rotated = correct_rotation(_jpeg_with_orientation(6))
    assert Image.open(io.BytesIO(rotated)).size == (20, 40)


def test_pdf_first_page_rendered():
    jpeg = pdf_first_page_to_jpeg(_pdf(pages=2))
    image = Image.open(io.BytesIO(jpeg))
    assert image.format == "JPEG"
    assert image.size == (300, 150)


def test_prepare_page_image_renders_pdf():
    prepared = asyncio.run(prepare_page_image(_pdf()))
    assert prepared[:2] == b"\xff\xd8"
