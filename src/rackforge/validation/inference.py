"""DIMM trait inference.

Catalog memory entries often omit ``buffering``, ``ecc`` and ``rankDensity``.
The defaults are derived from the DIMM type and rank count; an explicit field
on the part always wins over the derived default.
"""

from __future__ import annotations

from typing import NamedTuple

from ..schemas import EccSupport, Memory, MemoryBuffering, MemoryType, RankDensity


class DimmTraits(NamedTuple):
    buffering: MemoryBuffering
    ecc: EccSupport
    rank_density: RankDensity


def rank_density_for(ranks: int) -> RankDensity:
    if ranks <= 1:
        return "SR"
    if ranks == 2:
        return "DR"
    return "QR"


def infer_dimm_traits(dimm_type: MemoryType, ranks: int = 1) -> DimmTraits:
    if dimm_type == "RDIMM":
        buffering: MemoryBuffering = "Registered"
    elif dimm_type == "LRDIMM":
        buffering = "LoadReduced"
    else:
        buffering = "Unbuffered"
    ecc: EccSupport = "Non-ECC" if dimm_type == "UDIMM" else "ECC"
    return DimmTraits(buffering, ecc, rank_density_for(ranks))


def infer_buffering(memory: Memory) -> MemoryBuffering:
    if memory.constraints.buffering:
        return memory.constraints.buffering
    return infer_dimm_traits(memory.constraints.type).buffering


def infer_ecc(memory: Memory) -> EccSupport:
    if memory.constraints.ecc:
        return memory.constraints.ecc
    return infer_dimm_traits(memory.constraints.type).ecc


def infer_rank_density(memory: Memory) -> RankDensity:
    if memory.constraints.rank_density:
        return memory.constraints.rank_density
    return rank_density_for(memory.constraints.ranks)


def resolve_dimm_traits(memory: Memory) -> DimmTraits:
    return DimmTraits(infer_buffering(memory), infer_ecc(memory), infer_rank_density(memory))
