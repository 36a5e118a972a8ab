from datetime import date

# Constants
DONATION_COOLDOWN_DAYS = 90


def can_donate(last_donation_date, today=None) -> bool:
    """
    Check whether enough time has passed since the last donation.

    This is an advisory helper only. Donor availability is a separate flag
    set by the donor and is never derived from this result.

    Args:
        last_donation_date (date | None): Date of the previous donation
        today (date | None): Reference date, defaults to date.today()

    Returns:
        bool: True if the donor has never donated or donated at least
        DONATION_COOLDOWN_DAYS days ago
    """
    if not last_donation_date:
        return True
    today = today or date.today()
    return abs((today - last_donation_date).days) >= DONATION_COOLDOWN_DAYS


def days_until_eligible(last_donation_date, today=None) -> int:
    """Days left in the cooldown window, 0 when the donor can donate"""
    if can_donate(last_donation_date, today):
        return 0
    today = today or date.today()
    return DONATION_COOLDOWN_DAYS - (today - last_donation_date).days
