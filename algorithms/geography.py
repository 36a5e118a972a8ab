"""
Administrative divisions and districts of Bangladesh
Used to validate request/profile locations and by donor search filters
"""

DIVISIONS = [
    'Barishal', 'Chattogram', 'Dhaka', 'Khulna', 'Rajshahi', 'Rangpur', 'Mymensingh', 'Sylhet',
]

DISTRICTS_BY_DIVISION = {
    'Barishal': ['Barguna', 'Barishal', 'Bhola', 'Jhalokati', 'Patuakhali', 'Pirojpur'],
    'Chattogram': [
        'Bandarban', 'Brahmanbaria', 'Chandpur', 'Chattogram', 'Cumilla', "Cox's Bazar",
        'Feni', 'Khagrachari', 'Lakshmipur', 'Noakhali', 'Rangamati',
    ],
    'Dhaka': [
        'Dhaka', 'Faridpur', 'Gazipur', 'Gopalganj', 'Kishoreganj', 'Madaripur', 'Manikganj',
        'Munshiganj', 'Narayanganj', 'Narsingdi', 'Rajbari', 'Shariatpur', 'Tangail',
    ],
    'Khulna': [
        'Bagerhat', 'Chuadanga', 'Jessore', 'Jhenaidah', 'Khulna', 'Kushtia', 'Magura',
        'Meherpur', 'Narail', 'Satkhira',
    ],
    'Rajshahi': [
        'Bogra', 'Joypurhat', 'Naogaon', 'Natore', 'Chapainawabganj', 'Pabna', 'Rajshahi', 'Sirajganj',
    ],
    'Rangpur': [
        'Dinajpur', 'Gaibandha', 'Kurigram', 'Lalmonirhat', 'Nilphamari', 'Panchagarh', 'Rangpur', 'Thakurgaon',
    ],
    'Mymensingh': ['Jamalpur', 'Mymensingh', 'Netrokona', 'Sherpur'],
    'Sylhet': ['Habiganj', 'Moulvibazar', 'Sunamganj', 'Sylhet'],
}

ALL_DISTRICTS = sorted(d for districts in DISTRICTS_BY_DIVISION.values() for d in districts)

DIVISION_CHOICES = [(d, d) for d in DIVISIONS]
DISTRICT_CHOICES = [(d, d) for d in ALL_DISTRICTS]


def is_known_district(district):
    return district in ALL_DISTRICTS


def division_for_district(district):
    """Return the division a district belongs to, or None if unknown"""
    for division, districts in DISTRICTS_BY_DIVISION.items():
        if district in districts:
            return division
    return None


def district_in_division(district, division):
    return district in DISTRICTS_BY_DIVISION.get(division, [])
