"""Subscription schedule types."""

from enum import Enum


class ScheduleType(str, Enum):
    """How a subscription picks its dates.

    EVERY_OTHER_DAY is a legacy value; it is accepted on input and stored as
    EVERY_DAY.  CUSTOM uses an explicit list of dates.
    """

    EVERY_DAY = "every_day"
    EVERY_OTHER_DAY = "every_other_day"
    CUSTOM = "custom"

    @classmethod
    def normalize(cls, value: "ScheduleType | str | None") -> "ScheduleType":
        if value is None:
            return cls.EVERY_DAY
        schedule = cls(value)
        if schedule is cls.EVERY_OTHER_DAY:
            return cls.EVERY_DAY
        return schedule
