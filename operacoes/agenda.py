from __future__ import annotations

from django.db import transaction

from .models import Sponsor, SponsorStage, SponsorStageHistory


@transaction.atomic
def move_sponsor_stage(sponsor: Sponsor, stage: str, user=None) -> Sponsor:
    if stage not in SponsorStage.values:
        raise ValueError(f"Etapa invalida: {stage}")
    previous = sponsor.stage
    if previous == stage:
        return sponsor
    sponsor.stage = stage
    sponsor.save(update_fields=["stage", "updated_at"])
    SponsorStageHistory.objects.create(
        sponsor=sponsor,
        from_stage=previous,
        to_stage=stage,
        changed_by=user,
    )
    return sponsor
