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
from typing import Any

from setuptools import setup

NAME = 'SUPdec'
HERE = Path(__file__).parent

#%% metadata plumbing
meta: dict[str, Any] = {}
with open(HERE.joinpath(NAME, '__metadata__.py'), encoding='utf-8') as f:
    exec(f.read(), meta)

with open(HERE.joinpath('README.md'), encoding='utf-8') as fh:
    long_description = fh.read()

with open(HERE.joinpath('requirements.txt'), encoding='utf-8') as fh:
    install_requires = [line.strip() for line in fh if line.strip()]

#%% Final setup
def setup_pkg():
    setup(
        name=NAME,
        version=meta['__version__'],
        author=meta['__author__'],
        description='Blu-ray HDMV PGS decoder.',
        long_description=long_description,
        long_description_content_type='text/markdown',
        packages=[NAME,],
        license="GPLv3",
        zip_safe=False,
        classifiers=[
            'Programming Language :: Python :: 3',
            'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
            'Operating System :: OS Independent',
        ],
        python_requires='>=3.10',
        install_requires=install_requires,
        extras_require={
            'test': ['pytest'],
        },
    )
####
if __name__ == "__main__":
    setup_pkg()
