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

from dataclasses import dataclass, field
from collections import namedtuple
from typing import Optional, Union

import numpy as np
from numpy import (typing as npt)

from .utils import get_matrix, LogFacility

#%%

RGBA = namedtuple('RGBA', ['r', 'g', 'b', 'a'])
FpPal = namedtuple('FpPal', 'y cb cr alpha')

logger = LogFacility.get_logger('SUPdec')

def clip_rgba(rgba: npt.NDArray) -> npt.NDArray[np.uint8]:
    """
    Clip RGBA values to uint8 range before casting the array.
    :param rgba: array of RGBA values, whatever the shape.
    :return: array of rgba values clipped and casted.
    """
    rgba[rgba < 0] = 0
    rgba[rgba > 255] = 255
    return rgba.astype(np.uint8)


@dataclass
class PaletteEntry:
    y : int
    cr: int
    cb: int
    alpha: int

    def to_rgba(self, matrix: str = 'bt709', /, *,
                s_range: str = 'limited') -> RGBA:
        """
        :param matrix: BT ITU conversion to use
        :param s_range: YUV space
        :return: RGBA equivalent.
        """
        corr = 0 if 'full' in s_range else 16
        pe = FpPal(self.y-corr, self.cb-128, self.cr-128, self.alpha)

        rgba_v = np.matmul(get_matrix(matrix, True), np.asarray([[*pe]], dtype=float).T)
        return RGBA(*map(int, clip_rgba(np.round(rgba_v)).reshape(4,)))

    def __iter__(self):
        return iter((self.y, self.cr, self.cb, self.alpha))

    def __bytes__(self):
        return bytes([self.y, self.cr, self.cb, self.alpha])
####

#%%
@dataclass
class Palette:
    """
    Lookup table from an 8-bit index to a PGS colour (Y, Cr, Cb, alpha).
    """
    palette : dict[int, PaletteEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.sort()

    def __len__(self):
        return len(self.palette)

    def __contains__(self, idx: int) -> bool:
        return idx in self.palette

    def __getitem__(self, idx: int) -> PaletteEntry:
        if idx not in self.palette:
            raise KeyError(f"Palette entry {idx} is incorrect or does not exist.")
        return self.palette[idx]

    def __setitem__(self, idx: int, entry: Union[PaletteEntry, tuple[int, int, int, int]]) -> None:
        if 0 <= idx <= 255:
            self.palette[idx] = entry if isinstance(entry, PaletteEntry) else PaletteEntry(*entry)
        else:
            raise KeyError(f"Tried to set {idx} entry, outside of [0;255].")

    def __iter__(self):
        return iter(self.palette.values())

    def __bytes__(self):
        self.sort()
        bpal = bytearray()
        for idx, entry in self.palette.items():
            bpal += bytes([idx]) + bytes(entry)
        return bytes(bpal)

    def sort(self) -> None:
        self.palette = dict(sorted(self.palette.items(), key=lambda x: x[0]))

    def get(self, idx: int, default: Optional[PaletteEntry] = None) -> Optional[PaletteEntry]:
        return self.palette.get(idx, default)

    def get_ycbcra(self) -> npt.NDArray[np.uint8]:
        """
        Get palette as an array of YCbCrA values, without the entry index.
        :return: (len(pal), 4) shape array
        """
        return np.array([(p.y, p.cb, p.cr, p.alpha) for p in self.palette.values()], dtype=np.uint8).reshape((-1, 4))

    def get_rgba_array(self, matrix: str = 'bt709', s_range: str = 'limited') -> npt.NDArray[np.uint8]:
        """
        Build a complete 256 entries RGBA lookup table.
        Indexes not defined by the palette are fully transparent black.

        :param matrix: BT ITU conversion
        :param s_range: YUV range
        :return: (256, 4) uint8 array, indexable by a bitmap of palette indexes.
        """
        lut = np.zeros((256, 4), dtype=np.uint8)
        if len(self) == 0:
            return lut

        cmat = get_matrix(matrix, True)
        ycbcra = self.get_ycbcra().astype(float).T
        ycbcra[[1,2],:] -= 128
        if 'full' not in s_range: ycbcra[[0],:] -= 16
        t = clip_rgba(np.round(np.dot(cmat, ycbcra)).T)

        lut[list(self.palette.keys()), :] = t
        return lut

    def to_rgba(self, matrix: str = 'bt709',
                s_range: str = 'limited') -> dict[int, tuple[int]]:
        """
        Export a palette to a RGBA mapping
        :param matrix: BT ITU conversion
        :param s_range: YUV range
        :return: Mapping with, as key the palette entry ID and value: RGBA tuple.
        """
        lut = self.get_rgba_array(matrix, s_range)
        return {k: tuple(map(int, lut[k])) for k in self.palette}

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray, memoryview]) -> 'Palette':
        """
        Construct a Palette from [Id1 Y Cr Cb A Id2 Y ...] entries, as found in a PDS.
        Later duplicates of an index overwrite earlier ones.
        """
        assert len(data) % 5 == 0, "Expected [Id1 Y Cr Cb A Id2 Y ...] structure."
        entries = {}
        for k in range(0, len(data), 5):
            entries[data[k]] = PaletteEntry(*data[k+1:k+5])
        return cls(entries)
####
