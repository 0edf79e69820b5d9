"""
Machine settings: the rotor and reflector banks, which wheels sit in which
slot, their starting offsets, the plugboard and the stepping mode.

Settings are plain dataclasses that serialise to JSON. They are validated
as a whole when read, so a machine is either built completely or not at all.
"""
import dataclasses
import json
import logging
import pathlib
from typing import Dict, Tuple

import numpy as np

from .errors import ConfigurationError
from .machine import N_ROTORS, ROTOR_SLOTS, Enigma, Plugboard, Rotor
from .wiring import ALPHABET, N_SYMBOLS, Wiring, gen_swap_pairs, random_involution, random_permutation

logger = logging.getLogger(__name__)

CONFIG_VERSION = 1


@dataclasses.dataclass(frozen=True)
class RotorSpec:
    name: str
    wiring: str
    notches: str = ''


@dataclasses.dataclass(frozen=True)
class RotorSetting:
    name: str
    offset: int = 0


CLASSICAL_ROTORS: Dict[str, RotorSpec] = {
    'I': RotorSpec('I', 'EKMFLGDQVZNTOWYHXUSPAIBRCJ', 'Q'),
    'II': RotorSpec('II', 'AJDKSIRUXBLHWTMCQGZNPYFVOE', 'E'),
    'III': RotorSpec('III', 'BDFHJLCPRTXVZNYEIWGAKMUSQO', 'V'),
    'IV': RotorSpec('IV', 'ESOVPZJAYQUIRHXLNFTGKDCMWB', 'J'),
    'V': RotorSpec('V', 'VZBRGITYUPSDNHLXAWMJQOFECK', 'Z'),
}

CLASSICAL_REFLECTORS: Dict[str, str] = {
    'B': 'YRUHQSLDPXNGOKMIEBFZCWVJAT',
    'C': 'FVPJIAOYEDRZXWGCTKUQSBNMHL',
}


@dataclasses.dataclass(frozen=True)
class MachineConfig:
    name: str
    rotors: Tuple[RotorSetting, ...]
    reflector: str
    plugboard: Tuple[Tuple[str, str], ...] = ()
    stepping: bool = True
    double_step: bool = True
    rotor_bank: Dict[str, RotorSpec] = dataclasses.field(default_factory=lambda: dict(CLASSICAL_ROTORS))
    reflector_bank: Dict[str, str] = dataclasses.field(default_factory=lambda: dict(CLASSICAL_REFLECTORS))
    version: int = CONFIG_VERSION

    def __post_init__(self):
        # instances built directly or through dataclasses.replace never went through from_dict
        _check_config(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'MachineConfig':
        if not isinstance(data, dict):
            raise ConfigurationError(f'expected a mapping, got {type(data).__name__}')
        unknown = set(data) - {field.name for field in dataclasses.fields(cls)}
        if unknown:
            raise ConfigurationError(f"unknown keys {', '.join(sorted(unknown))}")

        version = data.get('version', CONFIG_VERSION)
        if version != CONFIG_VERSION:
            raise ConfigurationError(f'unsupported version {version!r}, expected {CONFIG_VERSION}', 'version')

        name = data.get('name', 'enigma')
        if not isinstance(name, str):
            raise ConfigurationError('must be a string', 'name')

        stepping = _parse_bool(data.get('stepping', True), 'stepping')
        double_step = _parse_bool(data.get('double_step', True), 'double_step')

        if 'rotor_bank' in data:
            rotor_bank = _parse_rotor_bank(data['rotor_bank'])
        else:
            rotor_bank = dict(CLASSICAL_ROTORS)
        if 'reflector_bank' in data:
            reflector_bank = _parse_reflector_bank(data['reflector_bank'])
        else:
            reflector_bank = dict(CLASSICAL_REFLECTORS)

        for field in ('rotors', 'reflector'):
            if field not in data:
                raise ConfigurationError('missing', field)
        rotors = _parse_rotor_settings(data['rotors'], rotor_bank)

        reflector = data['reflector']
        if not isinstance(reflector, str) or reflector not in reflector_bank:
            raise ConfigurationError(f'unknown reflector {reflector!r}', 'reflector')

        plugboard = _parse_plugboard(data.get('plugboard', []))

        return cls(name=name, rotors=rotors, reflector=reflector, plugboard=plugboard, stepping=stepping,
                   double_step=double_step, rotor_bank=rotor_bank, reflector_bank=reflector_bank,
                   version=version)

    def to_dict(self) -> dict:
        return {
            'version': self.version,
            'name': self.name,
            'stepping': self.stepping,
            'double_step': self.double_step,
            'rotors': [{'slot': slot, 'name': setting.name, 'offset': ALPHABET[setting.offset]}
                       for slot, setting in zip(ROTOR_SLOTS, self.rotors)],
            'reflector': self.reflector,
            'plugboard': [first + second for first, second in self.plugboard],
            'rotor_bank': {name: {'wiring': spec.wiring, 'notches': spec.notches}
                           for name, spec in self.rotor_bank.items()},
            'reflector_bank': dict(self.reflector_bank),
        }


def _parse_bool(value, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f'must be true or false, got {value!r}', field)
    return value


def _parse_wiring(value, field: str) -> str:
    try:
        return Wiring(value).permutation
    except ConfigurationError as err:
        raise ConfigurationError(str(err), field) from None


def _parse_rotor_bank(data) -> Dict[str, RotorSpec]:
    if not isinstance(data, dict) or not data:
        raise ConfigurationError('must be a non-empty mapping of rotor names', 'rotor_bank')
    bank = {}
    for name, entry in data.items():
        field = f'rotor_bank.{name}'
        if isinstance(entry, str):
            entry = {'wiring': entry}
        if not isinstance(entry, dict) or 'wiring' not in entry:
            raise ConfigurationError('needs a wiring', field)
        wiring = _parse_wiring(entry['wiring'], f'{field}.wiring')
        notches = entry.get('notches', '')
        if not isinstance(notches, str) or not set(notches.upper()) <= set(ALPHABET):
            raise ConfigurationError(f'notches {notches!r} must be letters of the alphabet', f'{field}.notches')
        bank[name] = RotorSpec(name, wiring, notches.upper())
    return bank


def _parse_reflector_bank(data) -> Dict[str, str]:
    if not isinstance(data, dict) or not data:
        raise ConfigurationError('must be a non-empty mapping of reflector names', 'reflector_bank')
    return {name: _parse_wiring(wiring, f'reflector_bank.{name}') for name, wiring in data.items()}


def parse_offset(value, field: str = 'offset') -> int:
    """Offsets are given either as a number or as the window letter."""
    if isinstance(value, bool):
        raise ConfigurationError(f'invalid offset {value!r}', field)
    if isinstance(value, int):
        if not 0 <= value < N_SYMBOLS:
            raise ConfigurationError(f'offset {value} is not in [0, {N_SYMBOLS})', field)
        return value
    if isinstance(value, str) and len(value) == 1 and value.upper() in ALPHABET:
        return ALPHABET.index(value.upper())
    raise ConfigurationError(f'invalid offset {value!r}', field)


def _parse_rotor_settings(data, rotor_bank) -> Tuple[RotorSetting, ...]:
    if not isinstance(data, list):
        raise ConfigurationError('must be a list of rotors ordered right, middle, left', 'rotors')
    if len(data) != N_ROTORS:
        raise ConfigurationError(f'exactly {N_ROTORS} rotors are needed, got {len(data)}', 'rotors')

    settings = []
    for i, entry in enumerate(data):
        field = f'rotors[{i}]'
        if isinstance(entry, str):
            entry = {'name': entry}
        if not isinstance(entry, dict) or 'name' not in entry:
            raise ConfigurationError('needs a rotor name', field)
        if 'slot' in entry and entry['slot'] != ROTOR_SLOTS[i]:
            raise ConfigurationError(f"slot {entry['slot']!r} does not match position {ROTOR_SLOTS[i]!r}",
                                     f'{field}.slot')
        name = entry['name']
        if not isinstance(name, str) or name not in rotor_bank:
            raise ConfigurationError(f'unknown rotor {name!r}', f'{field}.name')
        offset = parse_offset(entry.get('offset', 0), f'{field}.offset')
        settings.append(RotorSetting(name, offset))

    return tuple(settings)


def _parse_plugboard(data) -> Tuple[Tuple[str, str], ...]:
    if not isinstance(data, list):
        raise ConfigurationError('must be a list of symbol pairs', 'plugboard')
    try:
        return Plugboard(data).pairs
    except (ConfigurationError, TypeError, AttributeError) as err:
        raise ConfigurationError(str(err), 'plugboard') from None


def _check_config(config: MachineConfig):
    if config.version != CONFIG_VERSION:
        raise ConfigurationError(f'unsupported version {config.version!r}, expected {CONFIG_VERSION}', 'version')
    _parse_bool(config.stepping, 'stepping')
    _parse_bool(config.double_step, 'double_step')

    for name, spec in config.rotor_bank.items():
        _parse_wiring(spec.wiring, f'rotor_bank.{name}.wiring')
        if not set(spec.notches.upper()) <= set(ALPHABET):
            raise ConfigurationError(f'notches {spec.notches!r} must be letters of the alphabet',
                                     f'rotor_bank.{name}.notches')
    for name, wiring in config.reflector_bank.items():
        _parse_wiring(wiring, f'reflector_bank.{name}')

    if len(config.rotors) != N_ROTORS:
        raise ConfigurationError(f'exactly {N_ROTORS} rotors are needed, got {len(config.rotors)}', 'rotors')
    for i, setting in enumerate(config.rotors):
        if not isinstance(setting.name, str) or setting.name not in config.rotor_bank:
            raise ConfigurationError(f'unknown rotor {setting.name!r}', f'rotors[{i}].name')
        parse_offset(setting.offset, f'rotors[{i}].offset')

    if not isinstance(config.reflector, str) or config.reflector not in config.reflector_bank:
        raise ConfigurationError(f'unknown reflector {config.reflector!r}', 'reflector')
    _parse_plugboard(list(config.plugboard))


def load_config(path) -> MachineConfig:
    text = pathlib.Path(path).read_text(encoding='utf-8')
    try:
        data = json.loads(text)
    except json.JSONDecodeError as err:
        raise ConfigurationError(f'{path} is not valid JSON: {err}') from None
    config = MachineConfig.from_dict(data)
    logger.info('loaded machine %s from %s', config.name, path)
    return config


def save_config(config: MachineConfig, path):
    pathlib.Path(path).write_text(json.dumps(config.to_dict(), indent=4) + '\n', encoding='utf-8')
    logger.info('saved machine %s to %s', config.name, path)


def default_config() -> MachineConfig:
    """
    The M3 reference machine: rotors I, II, III from right to left and reflector B.

    Unlike every other machine it uses the simple carry instead of double-stepping,
    the published reference vectors were produced that way.
    """
    return MachineConfig(name='M3',
                         rotors=(RotorSetting('I'), RotorSetting('II'), RotorSetting('III')),
                         reflector='B',
                         double_step=False)


def select_rotors(config: MachineConfig, right: str, middle: str, left: str) -> MachineConfig:
    names = [right, middle, left]
    return MachineConfig.from_dict({**config.to_dict(), 'rotors': names})


def select_reflector(config: MachineConfig, name: str) -> MachineConfig:
    return MachineConfig.from_dict({**config.to_dict(), 'reflector': name})


def build_from_config(config: MachineConfig, trace=None) -> Enigma:
    # wirings are immutable and may be shared, rotors carry offsets and are fresh per machine
    wirings = {name: Wiring(spec.wiring) for name, spec in config.rotor_bank.items()}
    rotors = [Rotor(setting.name, wirings[setting.name], config.rotor_bank[setting.name].notches, setting.offset)
              for setting in config.rotors]

    reflector = Wiring(config.reflector_bank[config.reflector])
    if not reflector.is_involution() or reflector.fixed_points():
        logger.warning('reflector %s is not a fixed-point free involution, the machine will not be reciprocal',
                       config.reflector)

    return Enigma(rotors, Plugboard(config.plugboard), reflector, stepping=config.stepping,
                  double_step=config.double_step, name=config.name, trace=trace)


def random_config(seed: int = None, n_swaps: int = 10, custom_wheels: bool = False,
                  double_step: bool = True) -> MachineConfig:
    """
    Draw a random settings sheet.

    :param n_swaps: number of plugboard cables
    :param custom_wheels: also generate fresh rotor and reflector wirings instead of using the classical banks
    """
    if not 0 <= n_swaps <= N_SYMBOLS // 2:
        raise ValueError(f'n_swaps must be in [0, {N_SYMBOLS // 2}], got {n_swaps}')
    rng = np.random.default_rng(seed)

    if custom_wheels:
        seeds = rng.integers(low=0, high=2 ** 32, size=N_ROTORS + 1).tolist()
        rotor_bank = {}
        for i, wheel_seed in enumerate(seeds[:N_ROTORS]):
            name = f'R{i + 1}'
            notch = ALPHABET[int(rng.integers(N_SYMBOLS))]
            rotor_bank[name] = RotorSpec(name, random_permutation(wheel_seed), notch)
        reflector_bank = {'R': random_involution(seeds[-1])}
    else:
        rotor_bank = dict(CLASSICAL_ROTORS)
        reflector_bank = dict(CLASSICAL_REFLECTORS)

    names = rng.choice(sorted(rotor_bank), size=N_ROTORS, replace=False).tolist()
    offsets = rng.integers(low=0, high=N_SYMBOLS, size=N_ROTORS).tolist()
    reflector = str(rng.choice(sorted(reflector_bank)))
    plugboard = gen_swap_pairs(ALPHABET, n_swaps, int(rng.integers(2 ** 32)))

    return MachineConfig(name='random',
                         rotors=tuple(RotorSetting(name, offset) for name, offset in zip(names, offsets)),
                         reflector=reflector,
                         plugboard=tuple(plugboard),
                         double_step=double_step,
                         rotor_bank=rotor_bank,
                         reflector_bank=reflector_bank)
