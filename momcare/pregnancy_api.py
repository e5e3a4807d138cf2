# momcare/pregnancy_api.py
from fastapi import APIRouter

router = APIRouter(prefix="/api/pregnancy", tags=["Pregnancy Guide"])

# (first week, last week, summary, highlights)
DEVELOPMENT_BY_RANGE = [
    (1, 4,
     "Your baby is beginning to form foundational structures. Early cells are organizing rapidly.",
     ["Implantation and early placental support are underway",
      "Major growth signals start in the embryo",
      "Focus on folic acid, rest, and hydration"]),
    (5, 8,
     "Core organs begin forming quickly. This is a high-growth stage for early development.",
     ["Heart activity starts and strengthens",
      "Neural tube and brain structures keep developing",
      "Regular prenatal vitamins are especially important"]),
    (9, 13,
     "Your baby transitions into the fetal stage with clearer body features and steady growth.",
     ["Face and limb features become more defined",
      "Movement begins, though usually not felt yet",
      "First trimester care and nutrition remain key"]),
    (14, 20,
     "Growth accelerates and your baby becomes more active. Senses start maturing.",
     ["Bones and muscles are strengthening",
      "Hearing pathways begin developing",
      "Some mothers start feeling baby movements"]),
    (21, 27,
     "Your baby continues steady growth and development every day.",
     ["Sleep and wake cycles become more defined",
      "Lungs and brain continue to mature",
      "Maintain hydration, rest, and regular checkups"]),
    (28, 34,
     "Your baby is gaining weight and preparing for life outside the womb.",
     ["Body fat increases to help temperature control",
      "Brain connections grow rapidly",
      "Practice movement tracking and attend scheduled visits"]),
    (35, 40,
     "Final growth and maturation phase. Your baby is preparing for delivery.",
     ["Lungs reach near-full readiness",
      "Positioning for birth typically occurs",
      "Stay alert for labor signs and keep hospital plan ready"]),
]


def clamp_week(raw) -> int:
    try:
        week = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, min(40, week))


@router.get("/development/{week}")
def baby_development(week: str):
    week_num = clamp_week(week)
    _, _, summary, highlights = next(
        (block for block in DEVELOPMENT_BY_RANGE if block[0] <= week_num <= block[1]),
        DEVELOPMENT_BY_RANGE[0],
    )
    return {"success": True, "week": week_num, "summary": summary, "highlights": highlights}
