from .config import (CLASSICAL_REFLECTORS, CLASSICAL_ROTORS, MachineConfig, RotorSetting, RotorSpec,
                     build_from_config, default_config, load_config, random_config, save_config)
from .errors import ConfigurationError
from .machine import Direction, Enigma, Plugboard, Rotor, chunk, normalize
from .trace import ListTraceSink, LoggingTraceSink, TraceRecord, make_trace_sink
from .wiring import ALPHABET, Wiring, index_of, symbol_at
