#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Copyright (C) 2024 cibo
This file is part of SUPdec.

SUPdec is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

SUPdec is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with SUPdec.  If not, see <http://www.gnu.org/licenses/>.
"""

import os
from numpy import typing as npt
import numpy as np
from PIL import Image
from pathlib import Path
from typing import Union, Optional, Callable, Iterable

from .palette import Palette
from .utils import Area, AreaValues, LogFacility
from .errors import RleDecodeError, DumpError

from dataclasses import dataclass

logger = LogFacility.get_logger('SUPdec')

#%%
@dataclass(frozen=True)
class RleEncodedImage:
    """
    A decoded PGS object: its dimensions, the palette it was shown with
    and the still compressed bitmap.
    """
    width: int
    height: int
    palette: Palette
    object_data: bytes

    def area_at(self, x: int, y: int) -> Area:
        """
        Area covered by the bitmap when its top left corner sits at (x, y).
        """
        return Area(AreaValues(x, y, x + self.width - 1, y + self.height - 1))

#%%
def encode_rle(bitmap: npt.NDArray[np.uint8]) -> bytes:
    """
    Encode a 2D map using the RLE defined in 'US 7912305 B1' patent.
    :param bitmap:    Palette mapped image to encode (2d array)
    :return:          Encoded data (vector)
    """
    rle_data = []
    i, j = 0, 0

    height, width = bitmap.shape
    assert width <= 16383, "Bitmap too large."

    while i < height:
        color = bitmap[i, j]
        prev_j = j
        while (j := j+1) < width and bitmap[i, j] == color: pass

        dist = j - prev_j
        if color == 0:
            if dist > 63:
                rle_data += [0x00, 0x40 | ((dist >> 8) & 0x3F), dist & 0xFF]
            else:
                rle_data += [0x00, dist & 0x3F]
        else:
            if dist > 63:
                rle_data += [0x00, 0xC0 | ((dist >> 8) & 0x3F), dist & 0xFF, color]
            elif dist > 2:
                rle_data += [0x00, 0x80 | (dist & 0x3F), color]
            else:
                rle_data += [color] * dist
        if j == width:
            j = 0
            i += 1
            rle_data += [0x00, 0x00]
    return bytes(map(int, rle_data))

def decode_rle(data: Union[bytes, bytearray, memoryview], width: int, height: int,
               check_rle: bool = False) -> npt.NDArray[np.uint8]:
    """
    Decode a RLE object, as defined in 'US 7912305 B1' patent.
    Each code is either a single non-zero index, or 0x00 followed by:
      00LLLLLL                 L pixels of index 0
      01LLLLLL LLLLLLLL        L pixels of index 0
      10LLLLLL CCCCCCCC        L pixels of index C
      11LLLLLL LLLLLLLL CCCCCCCC
      00000000                 end of line

    :param data:      Data to decode
    :param width:     Expected width
    :param height:    Expected height
    :param check_rle: Reject lines shorter than width instead of padding them with index 0.
    :return:          (height, width) map to associate with the proper palette
    """
    bitmap = np.zeros((height, width), np.uint8)
    len_data = len(data)
    row, col, k = 0, 0, 0

    def next_byte() -> int:
        nonlocal k
        if k >= len_data:
            raise RleDecodeError(f"Truncated RLE code at offset {k}, line {row}.")
        byte = data[k]
        k += 1
        return byte

    while k < len_data:
        byte = next_byte()
        if byte != 0:
            length, color = 1, byte
        else:
            byte = next_byte()
            if byte == 0:
                if check_rle and col != width:
                    raise RleDecodeError(f"Line {row} has {col} pixels, expected {width}.")
                row += 1
                col = 0
                continue
            if byte & 0x40:
                length = ((byte & 0x3F) << 8) | next_byte()
            else:
                length = byte & 0x3F
            color = next_byte() if byte & 0x80 else 0

        if row >= height:
            raise RleDecodeError(f"RLE data exceeds the declared height ({height}).")
        if col + length > width:
            raise RleDecodeError(f"Line {row} exceeds the declared width ({width}).")
        bitmap[row, col:col+length] = color
        col += length

    if check_rle and (row != height or col != 0):
        raise RleDecodeError(f"Got {row} complete lines, expected {height}.")
    return bitmap

#%%
PixelConv = Callable[[npt.NDArray[np.uint8], Palette], npt.NDArray[np.uint8]]

def pixel_pass_through(bitmap: npt.NDArray[np.uint8], palette: Palette) -> npt.NDArray[np.uint8]:
    """
    Keep the palette index as a grayscale intensity (OCR preprocessing).
    """
    return bitmap

def pixel_palette_rgba(bitmap: npt.NDArray[np.uint8], palette: Palette,
                       matrix: str = 'bt709', s_range: str = 'limited') -> npt.NDArray[np.uint8]:
    return palette.get_rgba_array(matrix, s_range)[bitmap]

class RleToImage:
    """
    Materialize a RleEncodedImage into a pixel buffer with a given pixel policy.
    """
    def __init__(self, image: RleEncodedImage, conv: PixelConv = pixel_palette_rgba, **kwargs) -> None:
        self.image = image
        self.conv = conv
        self.check_rle = bool(kwargs.pop('check_rle', False))

    def bitmap(self) -> npt.NDArray[np.uint8]:
        return decode_rle(self.image.object_data, self.image.width, self.image.height, self.check_rle)

    def to_array(self) -> npt.NDArray[np.uint8]:
        return self.conv(self.bitmap(), self.image.palette)

    def to_image(self) -> Image.Image:
        pixels = self.to_array()
        # (h, w, 4) uint8 maps to RGBA, (h, w) uint8 to L.
        return Image.fromarray(np.ascontiguousarray(pixels))

#%%
def dump_images(folder: Union[str, Path], images: Iterable[Union[Image.Image, RleEncodedImage]],
                conv: Optional[PixelConv] = None) -> list[Path]:
    """
    Write each image as a numbered PNG in folder.
    :param folder: destination directory, created if needed.
    :param images: PIL images or encoded images (materialized with conv).
    :param conv:   pixel policy for encoded images, palette RGBA by default.
    :return: paths of the written files.
    """
    folder = Path(folder)
    try:
        os.makedirs(folder, exist_ok=True)
    except OSError as e:
        raise DumpError(folder) from e

    written = []
    for k, img in enumerate(images):
        if isinstance(img, RleEncodedImage):
            img = RleToImage(img, conv if conv is not None else pixel_palette_rgba).to_image()
        fp = folder.joinpath(f"{k:04}.png")
        try:
            img.save(fp, format='PNG')
        except OSError as e:
            raise DumpError(fp) from e
        written.append(fp)
    logger.debug(f"Dumped {len(written)} image(s) to '{folder}'.")
    return written
