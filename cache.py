# cache.py
import collections
import enum
import logging

logger = logging.getLogger(__name__)

ADDRESS_BITS = 64
ADDRESS_LIMIT = 1 << ADDRESS_BITS


class ConfigurationError(ValueError):
    """Raised when a cache geometry cannot be simulated."""


def power_of_two(n):
    return 1 << n


class CacheConfig(collections.namedtuple("CacheConfig", "set_index_bits block_offset_bits associativity")):
    """
    Cache geometry: s set-index bits, b block-offset bits, E lines per set.
    """
    __slots__ = ()

    @classmethod
    def from_dict(cls, cfg):
        return cls(
            set_index_bits=cfg.get("set_index_bits", 0),
            block_offset_bits=cfg.get("block_offset_bits", 0),
            associativity=cfg.get("associativity", 0),
        )

    @property
    def number_of_sets(self):
        return power_of_two(self.set_index_bits)

    @property
    def block_size(self):
        return power_of_two(self.block_offset_bits)

    @property
    def set_index_mask(self):
        return power_of_two(self.set_index_bits) - 1

    def validate(self):
        for name in self._fields:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        if self.set_index_bits < 1:
            raise ConfigurationError(f"set_index_bits must be positive, got {self.set_index_bits}")
        if self.block_offset_bits < 0:
            raise ConfigurationError(f"block_offset_bits must be non-negative, got {self.block_offset_bits}")
        if self.associativity < 1:
            raise ConfigurationError(f"associativity must be positive, got {self.associativity}")
        # at least one tag bit must remain
        if self.set_index_bits + self.block_offset_bits > ADDRESS_BITS - 1:
            raise ConfigurationError(
                f"set_index_bits + block_offset_bits must be at most {ADDRESS_BITS - 1}, "
                f"got {self.set_index_bits + self.block_offset_bits}"
            )
        return self


CacheStats = collections.namedtuple("CacheStats", "hits misses evictions")


class Outcome(enum.Enum):
    HIT = "hit"
    MISS = "miss"
    MISS_EVICTION = "miss eviction"

    @property
    def is_hit(self):
        return self is Outcome.HIT


class CacheLine:
    __slots__ = ("valid", "tag", "recency")

    def __init__(self):
        self.valid = False
        self.tag = 0
        self.recency = 0

    def __repr__(self):
        return f"CacheLine(valid={self.valid}, tag={self.tag:#x}, recency={self.recency})"


class SetAssocCache:
    """
    Set-associative cache model with LRU replacement.

    Only tags and validity are kept. Every line carries the logical clock
    value of its last hit or fill; the victim on a miss is the line with the
    smallest value, lowest index first. Invalid lines sit at recency 0 so
    they are always filled before anything is evicted.

    The clock and the hit/miss/eviction counters belong to the instance,
    so independent simulations never share state.
    """

    def __init__(self, config: CacheConfig):
        self.config = config.validate()
        self.sets = [
            [CacheLine() for _ in range(config.associativity)]
            for _ in range(config.number_of_sets)
        ]
        self.clock = 1
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        logger.debug(
            "cache initialized: %d sets x %d lines, block size %d",
            config.number_of_sets, config.associativity, config.block_size,
        )

    def decompose(self, addr):
        """Split an address into (set_index, tag); the block offset is dropped."""
        cfg = self.config
        set_index = (addr >> cfg.block_offset_bits) & cfg.set_index_mask
        tag = addr >> (cfg.set_index_bits + cfg.block_offset_bits)
        return set_index, tag

    def _tick(self):
        value = self.clock
        self.clock += 1
        return value

    def access(self, addr) -> Outcome:
        """
        Access address `addr`, update LRU state and counters.
        Returns the classification of this access.
        """
        if addr < 0 or addr >= ADDRESS_LIMIT:
            raise ValueError(f"address out of 64-bit range: {addr:#x}")
        si, tag = self.decompose(addr)
        lines = self.sets[si]

        for line in lines:
            if line.valid and line.tag == tag:
                # hit -> refresh recency
                line.recency = self._tick()
                self.hits += 1
                return Outcome.HIT

        self.misses += 1
        # min() keeps the first of equal keys, so ties go to the lowest index
        victim = min(lines, key=lambda line: line.recency)
        evicted = victim.valid
        if evicted:
            self.evictions += 1

        victim.valid = True
        victim.tag = tag
        victim.recency = self._tick()
        return Outcome.MISS_EVICTION if evicted else Outcome.MISS

    def stats(self):
        return CacheStats(self.hits, self.misses, self.evictions)

    def occupancy(self):
        used_lines = sum(line.valid for lines in self.sets for line in lines)
        return {
            "number_of_sets": self.config.number_of_sets,
            "associativity": self.config.associativity,
            "block_size": self.config.block_size,
            "used_lines": used_lines,
        }
