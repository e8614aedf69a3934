"""Magnitude-to-advice mapping - Pure functions.

A fixed ascending table of magnitude bands selects one entry of the
advice catalog. Bands are inclusive-lower/exclusive-upper, except the last
band which is closed on both ends.
"""

import re
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class MagnitudeBand:
    """A contiguous magnitude range mapped to one advice record.

    Attributes:
        index: Position of the band (and of its advice in the catalog)
        lower: Inclusive lower bound
        upper: Upper bound
        upper_inclusive: Whether ``upper`` itself belongs to the band
        label: Italian description sent along with the advice
    """
    index: int
    lower: float
    upper: float
    upper_inclusive: bool
    label: str

    def contains(self, magnitude: float) -> bool:
        if magnitude < self.lower:
            return False
        if self.upper_inclusive:
            return magnitude <= self.upper
        return magnitude < self.upper


MAGNITUDE_BANDS: tuple[MagnitudeBand, ...] = (
    MagnitudeBand(0, 2.0, 2.4, False, "Magnitudo tra 2.0 e 2.4: Terremoto leggero"),
    MagnitudeBand(1, 2.4, 3.4, False, "Magnitudo tra 2.4 e 3.4: Terremoto moderato"),
    MagnitudeBand(2, 3.4, 4.4, False, "Magnitudo tra 3.4 e 4.4: Terremoto forte"),
    MagnitudeBand(3, 4.4, 5.4, False, "Magnitudo tra 4.4 e 5.4: Terremoto molto forte"),
    MagnitudeBand(4, 5.4, 6.4, False, "Magnitudo tra 5.4 e 6.4: Terremoto severo"),
    MagnitudeBand(5, 6.4, 7.4, False, "Magnitudo tra 6.4 e 7.4: Terremoto devastante"),
    MagnitudeBand(6, 7.4, 8.4, False, "Magnitudo tra 7.4 e 8.4: Terremoto devastante"),
    MagnitudeBand(7, 8.4, 9.4, False, "Magnitudo tra 8.4 e 9.4: Terremoto catastrofico"),
    MagnitudeBand(8, 9.4, 10.0, True, "Magnitudo tra 9.4 e 10: Terremoto catastrofico"),
)


@dataclass(frozen=True)
class Advice:
    """Advisory text for one magnitude band.

    Attributes:
        id: Document id
        magnitude: Free-text magnitude label (e.g. "4.4 - 5.4")
        general: General advice
        aftershock_warning: Aftershock warning
        possible_impact: Possible impact
        during: Behaviour during the earthquake
        after: Behaviour after the earthquake
        safety_tips: Safety tips
    """
    id: str
    magnitude: str = ""
    general: str = ""
    aftershock_warning: str = ""
    possible_impact: str = ""
    during: str = ""
    after: str = ""
    safety_tips: str = ""


@dataclass(frozen=True)
class AdviceSelection:
    """The band an event fell into and the matching advice."""
    band: MagnitudeBand
    advice: Advice


# Stored field names, shared with the dashboard frontend
ADVICE_FIELDS = {
    "magnitude": "magnitudo",
    "general": "consigli",
    "aftershock_warning": "avvisiDiReplica",
    "possible_impact": "possibileImpatto",
    "during": "duranteIlTerremoto",
    "after": "dopoIlTerremoto",
    "safety_tips": "consigliDiSicurezza",
}

_NUMBER_RE = re.compile(r"\d+(?:[.,]\d+)?")


def parse_advice(advice_id: str, data: dict[str, Any]) -> Advice:
    """Parse a stored advice document. Pure function."""
    values = {
        attr: str(data.get(stored) or "")
        for attr, stored in ADVICE_FIELDS.items()
    }
    return Advice(id=advice_id, **values)


def advice_to_document(advice: Advice) -> dict[str, str]:
    """Convert an Advice back to its stored field names. Pure function."""
    return {stored: getattr(advice, attr) for attr, stored in ADVICE_FIELDS.items()}


def _label_lower_bound(label: str) -> float | None:
    match = _NUMBER_RE.search(label)
    if match is None:
        return None
    return float(match.group(0).replace(",", "."))


def order_catalog(advices: list[Advice]) -> list[Advice]:
    """Order advices so that position ``i`` matches MAGNITUDE_BANDS[i].

    Advices are sorted by the first number in their magnitude label;
    advices without a number keep their relative order at the end.

    Pure function.
    """
    numbered = []
    unnumbered = []
    for advice in advices:
        lower = _label_lower_bound(advice.magnitude)
        if lower is None:
            unnumbered.append(advice)
        else:
            numbered.append((lower, advice))

    numbered.sort(key=lambda item: item[0])
    return [advice for _, advice in numbered] + unnumbered


def select_band(magnitude: float | None) -> MagnitudeBand | None:
    """Find the band a magnitude falls into.

    Pure function.

    Returns:
        The matching band, or None below 2.0, above 10.0, or in a gap
    """
    if magnitude is None:
        return None
    for band in MAGNITUDE_BANDS:
        if band.contains(magnitude):
            return band
    return None


def select_advice(
    magnitude: float | None,
    catalog: list[Advice],
) -> AdviceSelection | None:
    """Select the advice for a magnitude from an ordered catalog.

    Pure function.

    Args:
        magnitude: Event magnitude
        catalog: Advices ordered by band (see order_catalog)

    Returns:
        AdviceSelection, or None if no band matches or the catalog has no
        entry for the band
    """
    band = select_band(magnitude)
    if band is None or band.index >= len(catalog):
        return None
    return AdviceSelection(band=band, advice=catalog[band.index])
