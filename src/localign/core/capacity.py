"""Geometric buffer growth shared by every reusable buffer in the package."""
import numpy as np


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class CapacityError(MemoryError):
    """
    Raised when a buffer cannot be grown.

    This is not recoverable: the owner of the buffer may be left with storage of inconsistent sizes.
    """


# Functions ------------------------------------------------------------------------------------------------------------
def round_up_pow2(n: int) -> int:
    """
    Rounds up to the next power of two.

    Examples:
        >>> round_up_pow2(100)
        128
        >>> round_up_pow2(128)
        128
    """
    if n <= 1: return 1
    return 1 << (int(n) - 1).bit_length()


def grow(array: np.ndarray, capacity: int, fill=0) -> np.ndarray:
    """
    Returns a copy of `array` with at least `capacity` elements, preserving its contents.

    New elements are set to `fill`. Arrays that are already large enough are returned as-is.

    Raises:
        CapacityError: If the allocation fails.
    """
    if len(array) >= capacity: return array
    try:
        new = np.empty(capacity, dtype=array.dtype)
    except MemoryError as e:
        raise CapacityError(f'Cannot grow {array.dtype} buffer from {len(array)} to {capacity} elements') from e
    n = len(array)
    new[:n] = array
    new[n:] = fill
    return new


def allocate(capacity: int, dtype, fill=0) -> np.ndarray:
    """Allocates a filled buffer, raising CapacityError if the allocation fails."""
    try:
        return np.full(capacity, fill, dtype=dtype)
    except MemoryError as e:
        raise CapacityError(f'Cannot allocate {dtype} buffer of {capacity} elements') from e
