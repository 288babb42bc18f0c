"""
Variation hash index.

Editors, version control and compilers normalize line endings and
trailing newlines inconsistently across platforms, so a submitted copy of
a source rarely has to be byte-identical to what was compiled. Every
source file is therefore indexed under the hashes of 18 plausible byte
forms: three line-ending families combined with six trailing-whitespace
shapes.

The index is built once per validation run and is read-only afterwards.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, Iterable, List

from validation.app.schemas.files import PathContent
from validation.app.utils.hashing import keccak256

Variator = Callable[[str], str]

_NEWLINE = re.compile(r"\r?\n")

CONTENT_VARIATORS: List[Variator] = [
    lambda content: content,
    lambda content: _NEWLINE.sub("\r\n", content),
    lambda content: content.replace("\r\n", "\n"),
]

# ECMAScript WhiteSpace and LineTerminator code points. Differs from the
# str.rstrip() default set: includes U+FEFF, excludes U+001C-U+001F and U+0085.
TRAILING_WHITESPACE = (
    "\t\n\v\f\r \u00a0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000\ufeff"
)


def _trim_end(content: str) -> str:
    return content.rstrip(TRAILING_WHITESPACE)


ENDING_VARIATORS: List[Variator] = [
    lambda content: content,
    _trim_end,
    lambda content: _trim_end(content) + "\n",
    lambda content: _trim_end(content) + "\r\n",
    lambda content: content + "\n",
    lambda content: content + "\r\n",
]


def generate_variations(file: PathContent) -> List[PathContent]:
    """
    Return every normalization of ``file``, each labelled with the
    original file's path. Duplicates are kept.
    """
    variations: List[PathContent] = []
    for content_variator in CONTENT_VARIATORS:
        varied = content_variator(file.content)
        for ending_variator in ENDING_VARIATORS:
            variations.append(
                PathContent(path=file.path, content=ending_variator(varied))
            )
    return variations


def build_variation_index(files: Iterable[PathContent]) -> Dict[str, PathContent]:
    """
    Map the keccak256 of every variation of every file to that variation.

    On collision the later file wins.
    """
    index: Dict[str, PathContent] = {}
    for file in files:
        for variation in generate_variations(file):
            index[keccak256(variation.content)] = variation
    return index
