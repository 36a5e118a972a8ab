"""
Blood group reference data

Matching is exact: an O- donor is only ever matched to an O- request.
There is deliberately no donor/recipient compatibility table here.
"""

BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

BLOOD_GROUP_CHOICES = [(group, group) for group in BLOOD_GROUPS]


def is_valid_blood_group(blood_group):
    """
    Check that a value is one of the 8 ABO/Rh groups

    Args:
        blood_group: Value to check (e.g., 'O+')

    Returns:
        Boolean: True if it is a known group, False otherwise
    """
    return blood_group in BLOOD_GROUPS
