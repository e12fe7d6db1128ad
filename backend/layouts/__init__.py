"""
Static page layout templates.

`layouts.json` holds frame metadata per layout; each `layoutN.svg` is the
matching template. Frame N is drawn by a shape filled with `url(#imgN)`.
"""
