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

from pathlib import Path

from collections.abc import Generator
from typing import Union, Optional, Any

from .pgstream import PgsDecoder, DecodeTimeOnly, DecodeTimeImage
from .pgraphics import RleEncodedImage
from .utils import LogFacility, TimeSpan
from .errors import PgsIoError

logger = LogFacility.get_logger('SUPdec')

#%%
class SUPFile:
    """
    Represents a .SUP file that contains a PGS stream.
    """
    def __init__(self, fp: Union[Path, str], **kwargs) -> None:
        self.file = fp
        self.bytes_per_read = int(kwargs.pop('bytes_per_read', 1*1024**2))
        assert self.bytes_per_read > 0
        self.multi_segment_objects = bool(kwargs.pop('multi_segment_objects', True))


    @property
    def file(self) -> str:
        return str(self._file)


    @file.setter
    def file(self, file: Union[Path, str]) -> None:
        if (file := Path(file)).is_file():
            self._file = file
        else:
            raise PgsIoError(file, "File does not exist")


    def gen_subtitles(self, decoder: Optional[PgsDecoder] = None) -> Generator[Any, None, None]:
        """
        Returns a generator of decoded subtitles. Stops when the file is
        exhausted. This is the main parsing function.

        :param decoder: decoding strategy, timing and image by default.
        :yield: Every subtitle, in order, as they appear in the SUP file.
        """
        if decoder is None:
            decoder = DecodeTimeImage(multi_segment_objects=self.multi_segment_objects)
        try:
            f = open(self.file, 'rb', buffering=self.bytes_per_read)
        except OSError as e:
            raise PgsIoError(self.file) from e

        cnt = 0
        with f:
            logger.debug(f"Decoding '{self.file}' with {decoder.__class__.__name__}.")
            for entry in decoder.iter_entries(f):
                cnt += 1
                yield entry
        logger.debug(f"Decoded {cnt} subtitle(s) from '{self.file}'.")
        return


    def gen_timespans(self) -> Generator[TimeSpan, None, None]:
        yield from self.gen_subtitles(DecodeTimeOnly(multi_segment_objects=self.multi_segment_objects))


    def timespans(self) -> list[TimeSpan]:
        """
        Get the time span of every subtitle in the file.
        """
        return list(self.gen_timespans())


    def images(self) -> list[tuple[TimeSpan, RleEncodedImage]]:
        """
        Get every subtitle in the file with its image.
        """
        return list(self.gen_subtitles())
####SUPFile
