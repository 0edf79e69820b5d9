import enum
import logging

import numpy as np

from .errors import ConfigurationError
from .trace import TraceRecord
from .wiring import ALPHABET, N_SYMBOLS, Wiring, index_of, symbol_at

logger = logging.getLogger(__name__)

_SYMBOLS = frozenset(ALPHABET)
N_ROTORS = 3
ROTOR_SLOTS = ('right', 'middle', 'left')


class Direction(enum.Enum):
    ENTERING = 'entering'  # towards the reflector
    RETURNING = 'returning'


def normalize(text: str) -> str:
    """Uppercase ``text`` and drop every character outside the alphabet."""
    upper = text.upper()
    normalized = ''.join(char for char in upper if char in _SYMBOLS)
    n_dropped = len(upper) - len(normalized)
    if n_dropped:
        logger.debug('dropped %d character(s) outside the alphabet', n_dropped)
    return normalized


def chunk(text: str, chunk_size: int = None) -> str:
    if chunk_size is None or chunk_size == -1:
        return text
    if chunk_size < 1:
        raise ValueError(f'chunk size must be positive or -1 for no chunking, got {chunk_size}')
    return ' '.join(text[i:i + chunk_size] for i in range(0, len(text), chunk_size))


class Rotor:
    def __init__(self, name: str, wiring: Wiring, notches: str = '', offset: int = 0):
        self.name = name
        self.wiring = wiring
        notches = notches.upper()
        if not set(notches) <= _SYMBOLS:
            raise ConfigurationError(f'notches {notches!r} of rotor {name} are not in the alphabet')
        self.notches = frozenset(notches)
        self.offset = 0
        self.set_position(offset)

    def set_position(self, pos: int):
        self.offset = pos % N_SYMBOLS

    def advance(self):
        self.offset = (self.offset + 1) % N_SYMBOLS

    def rotate_return_carryover(self, n_steps: int) -> int:
        div, mod = np.divmod(self.offset + n_steps, N_SYMBOLS)
        self.offset = int(mod)
        return int(div)

    def is_at_notch(self) -> bool:
        return self.window in self.notches

    @property
    def window(self) -> str:
        return symbol_at(self.offset)

    def get_permuted_output_forward(self, input_: int) -> int:
        entry = (input_ + self.offset) % N_SYMBOLS
        # python's % is floored, the exit index can never go negative
        return (self.wiring.forward_index(entry) - self.offset) % N_SYMBOLS

    def get_permuted_output_backward(self, input_: int) -> int:
        entry = (input_ + self.offset) % N_SYMBOLS
        return (self.wiring.reverse_index(entry) - self.offset) % N_SYMBOLS

    def transform(self, symbol: str, direction: Direction) -> str:
        if direction is Direction.ENTERING:
            return symbol_at(self.get_permuted_output_forward(index_of(symbol)))
        return symbol_at(self.get_permuted_output_backward(index_of(symbol)))

    def __repr__(self):
        return f'<Rotor {self.name} offset={self.offset} window={self.window}>'


class Plugboard:
    """Self-inverse partial swap of symbols, applied on the way in and out."""

    def __init__(self, pairs=()):
        normalized = []
        used = set()
        for raw in pairs:
            if len(raw) != 2:
                raise ConfigurationError(f'plug {raw!r} must connect exactly 2 symbols')
            first, second = (char.upper() for char in raw)
            for char in (first, second):
                if char not in _SYMBOLS:
                    raise ConfigurationError(f'plug {raw!r}: {char!r} is not in the alphabet')
                if char in used:
                    raise ConfigurationError(f'plug {raw!r}: {char!r} is already plugged')
            if first == second:
                raise ConfigurationError(f'plug {raw!r} connects {first!r} to itself')
            used.update((first, second))
            normalized.append((first, second))

        self.pairs = tuple(normalized)
        self.wiring = Wiring.from_pairs(self.pairs)

    def get_output(self, input_: int) -> int:
        return self.wiring.forward_index(input_)

    def swap(self, symbol: str) -> str:
        return self.wiring.forward(symbol)

    def __repr__(self):
        return f"<Plugboard {' '.join(a + b for a, b in self.pairs)}>"


class Enigma:
    """
    Three rotors, a reflector and a plugboard.

    ``rotors`` is ordered right, middle, left, i.e. in the order the signal
    passes them on the way to the reflector. Only the rotor offsets change
    while encoding, so two machines built from the same settings and set to
    the same positions produce the same output, and feeding the output back
    in from the same positions gives the input again.

    Double-stepping is the default, it is how the real machine moves. The
    simple carry (``double_step=False``) is an odometer kept for the reference
    settings of :func:`enigma.config.default_config`.
    """

    def __init__(self, rotors, plugboard: Plugboard, reflector: Wiring, stepping: bool = True,
                 double_step: bool = True, name: str = 'enigma', trace=None):
        rotors = list(rotors)
        if len(rotors) != N_ROTORS:
            raise ConfigurationError(f'machine needs exactly {N_ROTORS} rotors, got {len(rotors)}', 'rotors')
        if len({id(rot) for rot in rotors}) != N_ROTORS:
            raise ConfigurationError('the same rotor object cannot sit in two slots', 'rotors')
        self.rotors = rotors
        self.plug_board = plugboard
        self.reflector = reflector
        self.stepping = stepping
        self.double_step = double_step
        self.name = name
        self.trace = trace

    @property
    def right(self) -> Rotor:
        return self.rotors[0]

    @property
    def middle(self) -> Rotor:
        return self.rotors[1]

    @property
    def left(self) -> Rotor:
        return self.rotors[2]

    def set_plugboard(self, plugboard: Plugboard):
        self.plug_board = plugboard

    def set_rotor_positions(self, positions):
        """
        Set the offsets in rotor order (right, middle, left), as returned by
        :meth:`get_rotor_positions`. Each entry is a number or a letter; use
        :meth:`set_windows` for the letters as read off the machine.
        """
        if isinstance(positions, str):
            raise ValueError('a string of window letters reads left to right, use set_windows')
        positions = list(positions)
        if len(positions) != N_ROTORS:
            raise ValueError(f'need {N_ROTORS} positions, got {len(positions)}')
        for rot, pos in zip(self.rotors, positions):
            if isinstance(pos, str):
                pos = index_of(pos.upper())
            rot.set_position(pos)

    def get_rotor_positions(self):
        return [rot.offset for rot in self.rotors]

    def get_windows(self) -> str:
        """Window letters as seen on the machine, left to right."""
        return ''.join(rot.window for rot in reversed(self.rotors))

    def set_windows(self, windows: str):
        """Inverse of :meth:`get_windows`, e.g. ``ADO`` puts O in the right window."""
        if len(windows) != N_ROTORS:
            raise ValueError(f'need {N_ROTORS} window letters, got {windows!r}')
        self.set_rotor_positions(list(reversed(windows)))

    def reset(self):
        for rot in self.rotors:
            rot.offset = 0

    def _emit(self, stage: str, before: str, after: str):
        if self.trace is not None:
            self.trace(TraceRecord(stage, before, after))

    def _advance(self, rot: Rotor):
        before = rot.window
        rot.advance()
        self._emit(f'step {rot.name}', before, rot.window)

    def step(self):
        """Move the rotors for one key press, before the signal passes."""
        if not self.stepping:
            return
        if self.double_step:
            self._step_double()
        else:
            self._step_carry()

    def _step_carry(self):
        # odometer: a rotor completing a revolution carries one step to its left neighbour,
        # whatever the left rotor carries over is lost
        rot_step = 1
        for rot in self.rotors:
            if not rot_step:
                break
            before = rot.window
            rot_step = rot.rotate_return_carryover(rot_step)
            self._emit(f'step {rot.name}', before, rot.window)

    def _step_double(self):
        # the pawl engaging the middle rotor's notch pushes the middle and
        # the left rotor, so the middle rotor moves on two key presses in a row
        if self.middle.is_at_notch():
            self._advance(self.middle)
            self._advance(self.left)
        elif self.right.is_at_notch():
            self._advance(self.middle)
        self._advance(self.right)

    def _encode_index(self, number: int) -> int:
        self.step()

        trace = self.trace is not None
        stage_in = number
        number = self.plug_board.get_output(number)
        if trace:
            self._emit('plugboard', symbol_at(stage_in), symbol_at(number))
        for rot in self.rotors:
            stage_in = number
            number = rot.get_permuted_output_forward(number)
            if trace:
                self._emit(f'rotor {rot.name}', symbol_at(stage_in), symbol_at(number))
        stage_in = number
        number = self.reflector.forward_index(number)
        if trace:
            self._emit('reflector', symbol_at(stage_in), symbol_at(number))
        for rot in reversed(self.rotors):
            stage_in = number
            number = rot.get_permuted_output_backward(number)
            if trace:
                self._emit(f'rotor {rot.name}', symbol_at(stage_in), symbol_at(number))
        stage_in = number
        number = self.plug_board.get_output(number)
        if trace:
            self._emit('plugboard', symbol_at(stage_in), symbol_at(number))
        return number

    def encode(self, symbol: str) -> str:
        if len(symbol) != 1:
            raise ValueError(f'expected a single symbol, got {symbol!r}')
        return symbol_at(self._encode_index(index_of(symbol.upper())))

    def encode_message(self, input_: str, chunk_size: int = None) -> str:
        input_ints = [index_of(char) for char in normalize(input_)]

        output = ''.join(symbol_at(self._encode_index(number)) for number in input_ints)
        return chunk(output, chunk_size)

    def __repr__(self):
        return f'<Enigma {self.name} rotors={[rot.name for rot in self.rotors]} windows={self.get_windows()}>'
