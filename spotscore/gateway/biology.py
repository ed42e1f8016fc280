"""Hub'Eau biological indices (IBGN / IBD) and river-fish index (IPR)."""

import logging
from typing import Any, Dict, List, Optional

from spotscore.core.config import settings
from spotscore.gateway.base import SourceClient, degrade_to
from spotscore.gateway.cache import station_key
from spotscore.gateway.hydrology import hubeau_records
from spotscore.gateway.results import BiologicalIndexResult, FishIndex

logger = logging.getLogger(__name__)

IBGN_CODE = "5856"
IBD_CODE = "5910"


def quality_class_for(value: float) -> str:
    """Quality class shared by the IBGN and IBD 0-20 scales."""
    if value >= 17:
        return "Très bon"
    if value >= 13:
        return "Bon"
    if value >= 9:
        return "Moyen"
    if value >= 5:
        return "Médiocre"
    return "Mauvais"


def parse_biological_indices(records: List[Dict[str, Any]]) -> List[BiologicalIndexResult]:
    """Keep the most recent IBGN and IBD reading from a newest-first list."""
    results: List[BiologicalIndexResult] = []
    seen = set()
    for item in records:
        code = str(item.get("code_indice") or "")
        label = item.get("libelle_indice") or ""
        value = item.get("resultat_indice")
        if value is None:
            value = item.get("resultat")
        if value is None:
            continue

        if code == IBGN_CODE or "IBGN" in label:
            index_type = "IBGN"
        elif code == IBD_CODE or "IBD" in label:
            index_type = "IBD"
        else:
            continue

        if index_type in seen:
            continue
        seen.add(index_type)
        results.append(
            BiologicalIndexResult(
                index_type=index_type,
                value=value,
                quality_class=quality_class_for(value),
                measured_at=item.get("date_prelevement") or item.get("date_operation"),
            )
        )
    return results


class BiologySources(SourceClient):
    """Hydrobiology and fish-population lookups."""

    @degrade_to([])
    async def fetch_biological_indices(self, station_code: str) -> List[BiologicalIndexResult]:
        async def fetch() -> Optional[List[Dict[str, Any]]]:
            body = await self.get_json(
                "hubeau_hydrobio",
                f"{settings.HUBEAU_URL}/v1/hydrobio/indices",
                params={"code_station_hydrobio": station_code, "size": 50, "sort": "desc"},
                missing_ok=True,
            )
            return [reading.to_dict() for reading in parse_biological_indices(hubeau_records(body))]

        payload = await self.cache.get_or_fetch(
            station_key("biological_indices", station_code), fetch, settings.TTL_BIOLOGICAL_INDICES
        )
        return [BiologicalIndexResult.from_dict(item) for item in payload or []]

    @degrade_to(None)
    async def fetch_fish_index(self, station_code: str) -> Optional[FishIndex]:
        code = station_code.replace("hubeau_poisson_", "")

        async def fetch() -> Optional[Dict[str, Any]]:
            records = hubeau_records(
                await self.get_json(
                    "hubeau_etat_piscicole",
                    f"{settings.HUBEAU_URL}/v1/etat_piscicole/indicateurs",
                    params={
                        "code_station": code,
                        "size": 1,
                        "sort": "desc",
                        "fields": "code_station,date_operation,ipr_note,ipr_code_classe,ipr_libelle_classe",
                    },
                    missing_ok=True,
                )
            )
            if not records:
                return None
            record = records[0]
            return FishIndex(
                station_code=code,
                note=record.get("ipr_note"),
                class_code=record.get("ipr_code_classe"),
                class_label=record.get("ipr_libelle_classe"),
                operation_date=record.get("date_operation"),
            ).to_dict()

        payload = await self.cache.get_or_fetch(
            station_key("fish_index", code), fetch, settings.TTL_FISH_INDEX
        )
        return FishIndex.from_dict(payload) if payload else None
