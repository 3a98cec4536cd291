import numpy as np
import pytest
from PIL import Image

from SUPdec.palette import Palette, PaletteEntry
from SUPdec.pgraphics import (RleEncodedImage, RleToImage, encode_rle, decode_rle, dump_images,
                              pixel_pass_through, pixel_palette_rgba)
from SUPdec.utils import Area
from SUPdec.errors import RleDecodeError, DumpError

from pgs_builders import WHITE, CLEAR, RLE_2x4

BITMAP_2x4 = np.array([[0, 0, 1, 1], [2, 2, 2, 2]], dtype=np.uint8)

def make_palette() -> Palette:
    return Palette({2: PaletteEntry(16, 128, 128, 255), 0: PaletteEntry(*CLEAR), 1: PaletteEntry(*WHITE)})

def test_palette_entry_rgba():
    assert PaletteEntry(*WHITE).to_rgba() == (255, 255, 255, 255)
    assert PaletteEntry(*CLEAR).to_rgba() == (0, 0, 0, 0)
    assert PaletteEntry(16, 128, 128, 255).to_rgba('bt601') == (0, 0, 0, 255)

def test_palette_container():
    pal = make_palette()
    assert list(pal.palette.keys()) == [0, 1, 2]
    assert len(pal) == 3 and 1 in pal and 7 not in pal
    assert pal.get(7) is None
    with pytest.raises(KeyError):
        pal[7]
    with pytest.raises(KeyError):
        pal[256] = WHITE
    pal[7] = WHITE
    assert pal[7] == PaletteEntry(*WHITE)

def test_palette_bytes():
    raw = bytes([1, *WHITE, 0, *CLEAR])
    pal = Palette.from_bytes(raw)
    assert bytes(pal) == bytes([0, *CLEAR, 1, *WHITE])

def test_palette_lut():
    lut = make_palette().get_rgba_array()
    assert lut.shape == (256, 4) and lut.dtype == np.uint8
    assert tuple(lut[1]) == (255, 255, 255, 255)
    assert tuple(lut[2]) == (0, 0, 0, 255)
    assert not lut[3:].any()
    assert make_palette().to_rgba()[1] == (255, 255, 255, 255)

def test_palette_lut_empty():
    assert not Palette().get_rgba_array().any()

def test_unknown_matrix():
    with pytest.raises(NotImplementedError):
        PaletteEntry(*WHITE).to_rgba('bt666')

####

def test_decode_rle():
    assert np.array_equal(decode_rle(RLE_2x4, 4, 2), BITMAP_2x4)
    assert np.array_equal(decode_rle(RLE_2x4, 4, 2, check_rle=True), BITMAP_2x4)

def test_encode_rle():
    assert encode_rle(BITMAP_2x4) == RLE_2x4

def test_rle_long_runs():
    bitmap = np.zeros((3, 300), dtype=np.uint8)
    bitmap[1, 10:250] = 7
    bitmap[2, :] = 3
    data = encode_rle(bitmap)
    assert np.array_equal(decode_rle(data, 300, 3, check_rle=True), bitmap)

@pytest.mark.parametrize("data, width, height", [
    (b'\x00', 4, 2),                          # truncated escape
    (b'\x00\x40', 4, 2),                      # truncated long run
    (b'\x00\x85\x02', 4, 2),                  # overflows width
    (RLE_2x4 + b'\x01', 4, 2),                # overflows height
])
def test_decode_rle_malformed(data: bytes, width: int, height: int):
    with pytest.raises(RleDecodeError):
        decode_rle(data, width, height)

def test_decode_rle_short_line():
    data = bytes([0x01, 0x00, 0x00, 0x00, 0x84, 0x02, 0x00, 0x00])
    bitmap = decode_rle(data, 4, 2)
    assert bitmap[0].tolist() == [1, 0, 0, 0]
    with pytest.raises(RleDecodeError):
        decode_rle(data, 4, 2, check_rle=True)
    with pytest.raises(RleDecodeError):
        decode_rle(RLE_2x4[:4], 4, 2, check_rle=True)

####

def test_area_at():
    image = RleEncodedImage(4, 2, make_palette(), RLE_2x4)
    assert image.area_at(10, 20) == Area.from_coords(10, 20, 13, 21)
    assert image.area_at(10, 20).size.area == 8

def test_rle_to_image_rgba():
    image = RleEncodedImage(4, 2, make_palette(), RLE_2x4)
    arr = RleToImage(image).to_array()
    assert arr.shape == (2, 4, 4)
    assert tuple(arr[0, 0]) == (0, 0, 0, 0)
    assert tuple(arr[0, 3]) == (255, 255, 255, 255)
    assert tuple(arr[1, 1]) == (0, 0, 0, 255)

    img = RleToImage(image, pixel_palette_rgba).to_image()
    assert img.mode == 'RGBA' and img.size == (4, 2)

def test_rle_to_image_indexes():
    image = RleEncodedImage(4, 2, make_palette(), RLE_2x4)
    img = RleToImage(image, pixel_pass_through, check_rle=True).to_image()
    assert img.mode == 'L' and img.size == (4, 2)
    assert np.array_equal(np.asarray(img), BITMAP_2x4)

def test_dump_images(tmp_path):
    image = RleEncodedImage(4, 2, make_palette(), RLE_2x4)
    paths = dump_images(tmp_path / 'out', [image, Image.new('L', (3, 3))])
    assert [p.name for p in paths] == ['0000.png', '0001.png']
    with Image.open(paths[0]) as img:
        assert img.mode == 'RGBA' and img.size == (4, 2)

def test_dump_images_error(tmp_path):
    target = tmp_path / 'file'
    target.write_bytes(b'')
    with pytest.raises(DumpError):
        dump_images(target, [])
