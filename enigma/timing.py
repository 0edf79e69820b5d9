import time

import numpy as np
import tqdm

from .machine import Enigma
from .wiring import ALPHABET


def time_encoding(machine: Enigma, n_messages: int = 3000, chars_per_message: int = 256, seed: int = 0,
                  disable_tqdm: bool = False) -> float:
    """Average time in seconds to encode one random message of ``chars_per_message`` symbols."""
    if n_messages < 1:
        raise ValueError(f'need at least one message, got {n_messages}')
    rng = np.random.default_rng(seed)
    charset = np.array(list(ALPHABET))
    messages = [''.join(rng.choice(charset, size=chars_per_message)) for _ in range(n_messages)]

    rotor_positions = machine.get_rotor_positions()
    tick = time.perf_counter()
    for message in tqdm.tqdm(messages, disable=disable_tqdm):
        machine.set_rotor_positions(rotor_positions)
        machine.encode_message(message)
    tock = time.perf_counter()
    machine.set_rotor_positions(rotor_positions)

    return (tock - tick) / n_messages
