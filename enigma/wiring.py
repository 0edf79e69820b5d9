import string

import numpy as np

from .errors import ConfigurationError

ALPHABET = string.ascii_uppercase
N_SYMBOLS = len(ALPHABET)

_INDEX = {char: i for i, char in enumerate(ALPHABET)}


def index_of(symbol: str) -> int:
    try:
        return _INDEX[symbol]
    except KeyError:
        raise ValueError(f'symbol {symbol!r} is not in the alphabet') from None


def symbol_at(index: int) -> str:
    return ALPHABET[index % N_SYMBOLS]


def gen_swap_pairs(elements: list, n_swaps: int, seed):
    """Draw ``n_swaps`` disjoint pairs out of ``elements``."""
    elements = list(elements)
    if 2 * n_swaps > len(elements):
        raise ValueError(f'cannot draw {n_swaps} disjoint pairs from {len(elements)} elements')
    rng = np.random.default_rng(seed)

    # random input jacks of the board
    firsts = rng.choice(elements, size=n_swaps, replace=False).tolist()
    for el in firsts:
        elements.remove(el)

    # random output jacks
    seconds = rng.choice(elements, size=n_swaps, replace=False).tolist()

    return list(zip(firsts, seconds))


def random_permutation(seed) -> str:
    perm_forward = np.random.default_rng(seed).permutation(N_SYMBOLS)
    return ''.join(ALPHABET[i] for i in perm_forward)


def random_involution(seed) -> str:
    """A fixed-point free involution, i.e. a valid reflector wiring."""
    mapping = list(ALPHABET)
    for first, second in gen_swap_pairs(ALPHABET, N_SYMBOLS // 2, seed):
        mapping[index_of(first)] = second
        mapping[index_of(second)] = first
    return ''.join(mapping)


class Wiring:
    """
    A bijection on the alphabet together with its inverse.

    Both directions are kept as read-only integer arrays indexed by symbol
    position, so a lookup is a single array access. Instances never change
    after construction and can be shared between any number of machines.
    """

    def __init__(self, permutation: str):
        if not isinstance(permutation, str):
            raise ConfigurationError(f'wiring must be a string, got {type(permutation).__name__}')
        permutation = permutation.upper()
        if len(permutation) != N_SYMBOLS or set(permutation) != set(ALPHABET):
            raise ConfigurationError(
                f'wiring {permutation!r} is not a permutation of {ALPHABET}')

        self.permutation = permutation
        self._forward = np.array([_INDEX[char] for char in permutation], dtype=np.intp)
        self._reverse = np.argsort(self._forward)
        self._forward.setflags(write=False)
        self._reverse.setflags(write=False)

    @classmethod
    def from_pairs(cls, pairs):
        mapping = list(ALPHABET)
        for first, second in pairs:
            mapping[_INDEX[first]], mapping[_INDEX[second]] = second, first
        return cls(''.join(mapping))

    def forward_index(self, index: int) -> int:
        return int(self._forward[index])

    def reverse_index(self, index: int) -> int:
        return int(self._reverse[index])

    def forward(self, symbol: str) -> str:
        return ALPHABET[self._forward[index_of(symbol)]]

    def reverse(self, symbol: str) -> str:
        return ALPHABET[self._reverse[index_of(symbol)]]

    def is_involution(self) -> bool:
        return bool(np.all(self._forward[self._forward] == np.arange(N_SYMBOLS)))

    def fixed_points(self) -> str:
        # reflectors are meant to have none, but legacy wirings may
        return ''.join(ALPHABET[i] for i in np.flatnonzero(self._forward == np.arange(N_SYMBOLS)))

    def __eq__(self, other):
        if not isinstance(other, Wiring):
            return NotImplemented
        return self.permutation == other.permutation

    def __hash__(self):
        return hash(self.permutation)

    def __repr__(self):
        return f'Wiring({self.permutation!r})'
