from django.http import JsonResponse

from algorithms.blood_groups import BLOOD_GROUPS
from algorithms.geography import DISTRICTS_BY_DIVISION, DIVISIONS


def home(request):
    """Reference data the client needs to build its forms"""
    return JsonResponse({
        'name': 'LifeShare',
        'blood_groups': BLOOD_GROUPS,
        'divisions': DIVISIONS,
        'districts_by_division': DISTRICTS_BY_DIVISION,
    })
