"""
Initial state seeding: the locker singleton plus one row per ISO 3166-1 alpha-2 country.

Idempotent. Existing rows are left untouched so a re-seed never resets counts.
"""
import logging
from typing import Dict, Iterable

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models import CountryState, LockerState
from ..models.locker_state import utcnow

logger = logging.getLogger(__name__)

ISO_COUNTRY_CODES = (
    "AD AE AF AG AI AL AM AO AQ AR AS AT AU AW AX AZ "
    "BA BB BD BE BF BG BH BI BJ BL BM BN BO BQ BR BS BT BV BW BY BZ "
    "CA CC CD CF CG CH CI CK CL CM CN CO CR CU CV CW CX CY CZ "
    "DE DJ DK DM DO DZ "
    "EC EE EG EH ER ES ET "
    "FI FJ FK FM FO FR "
    "GA GB GD GE GF GG GH GI GL GM GN GP GQ GR GS GT GU GW GY "
    "HK HM HN HR HT HU "
    "ID IE IL IM IN IO IQ IR IS IT "
    "JE JM JO JP "
    "KE KG KH KI KM KN KP KR KW KY KZ "
    "LA LB LC LI LK LR LS LT LU LV LY "
    "MA MC MD ME MF MG MH MK ML MM MN MO MP MQ MR MS MT MU MV MW MX MY MZ "
    "NA NC NE NF NG NI NL NO NP NR NU NZ "
    "OM "
    "PA PE PF PG PH PK PL PM PN PR PS PT PW PY "
    "QA "
    "RE RO RS RU RW "
    "SA SB SC SD SE SG SH SI SJ SK SL SM SN SO SR SS ST SV SX SY SZ "
    "TC TD TF TG TH TJ TK TL TM TN TO TR TT TV TW TZ "
    "UA UG UM US UY UZ "
    "VA VC VE VG VI VN VU "
    "WF WS "
    "YE YT "
    "ZA ZM ZW"
).split()


def seed_initial_state(db: Session, country_codes: Iterable[str] = ISO_COUNTRY_CODES) -> Dict[str, int]:
    """
    Insert missing locker/country rows.

    Returns:
        {"locker_created": 0|1, "countries_created": n}
    """
    now = utcnow()
    locker_created = 0
    if db.query(LockerState).filter(LockerState.id == settings.LOCKER_ID).first() is None:
        db.add(
            LockerState(
                id=settings.LOCKER_ID,
                energy_percentage=0,
                is_unlocked=False,
                last_updated=now,
            )
        )
        locker_created = 1

    existing = {code for (code,) in db.query(CountryState.country_code).all()}
    countries_created = 0
    for code in country_codes:
        code = code.upper()
        if code in existing:
            continue
        db.add(CountryState(country_code=code, activation_count=0, glow_band=0, last_updated=now))
        existing.add(code)
        countries_created += 1

    db.commit()
    logger.info(f"Seeded initial state: locker_created={locker_created}, countries_created={countries_created}")
    return {"locker_created": locker_created, "countries_created": countries_created}
