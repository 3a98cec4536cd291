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

import logging
import math
import numpy as np

from typing import Optional, Union
from numpy import typing as npt
from fractions import Fraction
from timecode import Timecode
from dataclasses import dataclass
from functools import lru_cache

from .errors import InvalidAreaBounding

#%%
@dataclass
class Size:
    w: int
    h: int

    def __post_init__(self) -> None:
        assert self.w >= 0 and self.h >= 0

    @property
    def area(self) -> int:
        return self.w*self.h

    def __iter__(self):
        return iter((self.w, self.h))

#%%
@dataclass
class AreaValues:
    """
    Raw, unchecked coordinates of a bounding box (inclusive).
    """
    x1: int
    y1: int
    x2: int
    y2: int

    def __iter__(self):
        return iter((self.x1, self.y1, self.x2, self.y2))

class Area:
    """
    Location at which to display a subtitle bitmap, in pixel coordinates.
    Coordinates are inclusive: a box (10, 10, 20, 20) is 11x11 pixels.
    Construction guarantees x2 > x1 and y2 > y1, every other method
    relies on it.
    """
    __slots__ = ('_v',)

    def __init__(self, values: AreaValues) -> None:
        if values.x2 <= values.x1 or values.y2 <= values.y1:
            raise InvalidAreaBounding(values)
        self._v = AreaValues(*values)

    @classmethod
    def from_coords(cls, x1: int, y1: int, x2: int, y2: int) -> 'Area':
        return cls(AreaValues(x1, y1, x2, y2))

    @property
    def left(self) -> int:
        return self._v.x1

    @property
    def top(self) -> int:
        return self._v.y1

    @property
    def width(self) -> int:
        return self._v.x2 + 1 - self._v.x1

    @property
    def height(self) -> int:
        return self._v.y2 + 1 - self._v.y1

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def coords(self) -> tuple[int, int, int, int]:
        return tuple(self._v)

    @property
    def values(self) -> AreaValues:
        return AreaValues(*self._v)

    @property
    def slice(self) -> tuple[slice, slice]:
        """
        Return the numpy-like (row, col) slices covered by the area.
        """
        return (slice(self._v.y1, self._v.y2 + 1),
                slice(self._v.x1, self._v.x2 + 1))

    def intersect(self, area: 'Area') -> bool:
        a, b = self._v, area._v
        return a.x1 <= b.x2 and a.x2 >= b.x1 and a.y1 <= b.y2 and a.y2 >= b.y1

    def intersect_y(self, area: 'Area') -> bool:
        a, b = self._v, area._v
        return a.y1 <= b.y2 and a.y2 >= b.y1

    def contains(self, area: 'Area') -> bool:
        a, b = self._v, area._v
        return a.x1 <= b.x1 and a.x2 >= b.x2 and a.y1 <= b.y1 and a.y2 >= b.y2

    def extend(self, area: 'Area') -> None:
        """
        Grow self to the smallest box covering both self and area.
        """
        a, b = self._v, area._v
        self._v = AreaValues(min(a.x1, b.x1), min(a.y1, b.y1),
                             max(a.x2, b.x2), max(a.y2, b.y2))

    def copy(self) -> 'Area':
        return __class__(self._v)

    def __eq__(self, other) -> bool:
        if isinstance(other, __class__):
            return self.coords == other.coords
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.coords)

    def __repr__(self) -> str:
        return "Area(x1={}, y1={}, x2={}, y2={})".format(*self._v)
####

#%%
@dataclass(frozen=True, order=True)
class TimePoint:
    """
    A signed time in milliseconds.
    """
    msecs: int

    @classmethod
    def from_msecs(cls, msecs: int) -> 'TimePoint':
        return cls(int(msecs))

    @classmethod
    def from_secs(cls, seconds: float) -> 'TimePoint':
        # Truncate towards zero, sub-millisecond digits are dropped.
        if not math.isfinite(seconds):
            raise ValueError(f"Cannot represent {seconds} seconds as a TimePoint.")
        return cls(int(seconds * 1000.0))

    def to_secs(self) -> float:
        return self.msecs / 1000.

    def to_timecode(self, fps: Union[float, Fraction]) -> Timecode:
        """
        Convert to a non drop frame SMPTE timecode at the given framerate.
        """
        s = self.to_secs()
        assert s >= 0, "Negative time has no timecode."
        #Add 1e-8 to avoid wrong rounding
        s = s/(1 if float(fps).is_integer() else 1.001)
        return Timecode(round(float(fps), 2), start_seconds=s+1/float(fps)+1e-8, force_non_drop_frame=True)

    def __neg__(self) -> 'TimePoint':
        return __class__(-self.msecs)

    def __str__(self) -> str:
        t = abs(self.msecs)
        hours, rem = divmod(t, 3600*1000)
        mins, rem = divmod(rem, 60*1000)
        secs, msecs = divmod(rem, 1000)
        return f"{'-' if self.msecs < 0 else ''}{hours:02}:{mins:02}:{secs:02},{msecs:03}"

@dataclass
class TimeSpan:
    """
    Start and end of a subtitle. start <= end is expected, not enforced.
    """
    start: TimePoint
    end: TimePoint

    @property
    def duration(self) -> TimePoint:
        return TimePoint(self.end.msecs - self.start.msecs)

    def __str__(self) -> str:
        return f"{self.start} --> {self.end}"
####

#%%
@lru_cache(maxsize=6)
def get_matrix(matrix: str, to_rgba: bool) -> npt.NDArray[np.float64]:
    """
    Getter of colorspace conversion matrix, BT ITU, limited range.
    :param matrix:       Conversion (BTxxx)
    :param to_rgba:      True for YCbCrA -> RGBA, False for the inverse.
    :return:             Matrix
    """

    cc_matrix = {
        'bt601': {'y2r':   np.array([[1.164,       0,  1.596, 0],
                                     [1.164,  -0.392, -0.813, 0],
                                     [1.164,   2.017,      0, 0],
                                     [    0,       0,      0, 1]]),
                  'r2y':   np.array([[ 0.257,  0.504,  0.098, 0],
                                     [-0.148, -0.291,  0.439, 0],
                                     [ 0.439, -0.368, -0.071, 0],
                                     [     0,      0,      0, 1]]),
        },
        'bt709': {'y2r':   np.array([[1.164,      0,   1.793, 0],
                                     [1.164, -0.213,  -0.533, 0],
                                     [1.164,  2.112,       0, 0],
                                     [    0,      0,       0, 1]]),
                  'r2y':   np.array([[ 0.183,  0.614,  0.062, 0],
                                     [-0.101, -0.339,  0.439, 0],
                                     [ 0.439, -0.399, -0.040, 0],
                                     [     0,      0,      0, 1]]),
        },
        'bt2020': {'y2r':  np.array([[1.16439,      0,1.67867,0],
                                     [1.16439,-.18734,-.65042,0],
                                     [1.16439,2.14175,      0,0],
                                     [     0,      0,       0,1]]),
                   'r2y':  np.array([[0.22561,0.58228,0.05093,0],
                                     [-.12266,-.31656,0.43922,0],
                                     [0.43922,-.40389,-.03533,0],
                                     [      0,      0,      0,1]]),
        },
    }
    mat = cc_matrix.get(matrix, None)
    if mat is None:
        raise NotImplementedError("Unknown/Not implemented conversion standard.")
    return mat["y2r" if to_rgba else "r2y"]

#%%
class LogFacility:
    _logger = dict()

    @classmethod
    def set_file_log(cls, logger: logging.Logger, fp: str, level: Optional[int] = None, simple_format: bool = False) -> None:
        if level is None:
            level = logger.level
        lfh = logging.FileHandler(fp, mode='w')
        formatter = logging.Formatter('%(message)s' if simple_format else '%(levelname).8s: %(message)s')
        lfh.setFormatter(formatter)
        if logger.getEffectiveLevel() > level:
            cls.set_logger_level(logger.name, level)
        lfh.setLevel(level)
        logger.addHandler(lfh)

    @classmethod
    def _init_logger(cls, name: str, with_handler: bool = True) -> None:
        cls._extend_logger()
        logger = cls._logger[name] = logging.getLogger(name)

        if not logger.hasHandlers() and with_handler:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(' %(name)s %(levelname).4s : %(message)s')
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    @classmethod
    def set_logger_level(cls, name: str, level: int) -> None:
        assert cls._logger.get(name, None) is not None
        cls._logger[name].setLevel(level)
        if len(cls._logger[name].handlers):
            cls._logger[name].handlers[0].setLevel(level)

    @classmethod
    def get_logger(cls, name: str, level: int = logging.INFO, with_handler: bool = True) -> logging.Logger:
        """
        Get (and create on first call) the logger name, logging to console.

        Args:
          name: Name for the logger.
          level: Minimum level for messages to be logged
        """
        if cls._logger.get(name, None) is None:
            cls._init_logger(name, with_handler)
            cls.set_logger_level(name, level)
        return cls._logger[name]

    @staticmethod
    def _extend_logger() -> None:
        if getattr(logging.Logger, 'ldebug', None) is not None:
            return
        LOW_DEBUG = logging.DEBUG - 5
        logging.addLevelName(LOW_DEBUG, "LDEBUG")
        def low_debug(self, message, *args, **kws):
            if self.isEnabledFor(LOW_DEBUG):
                self._log(LOW_DEBUG, message, args, **kws)
        logging.Logger.ldebug = low_debug
    ####
####
