"""Exceptions raised by the defogging pipeline."""


class DefogError(Exception):
    """Base class for every failure the pipeline reports."""


class InputDecodeError(DefogError, OSError):
    """The source image could not be read or decoded."""


class DegenerateRegionError(DefogError, ValueError):
    """No atmospheric light can be estimated for the region."""


class InvalidRegionError(DefogError, ValueError):
    """A region is empty or lies outside the image."""


class OutputWriteError(DefogError, OSError):
    """An output image could not be written."""
