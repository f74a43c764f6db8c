from models import CensusProfile
from utils.profile_presenter import (
    INSTRUCTIONS, build_sections, format_currency, format_distance, format_number,
    format_percent, quickfacts_url, sidebar_context,
)


def test_formatters():
    assert format_number(39538223) == '39,538,223'
    assert format_number('1234') == '1,234'
    assert format_number(None) == 'N/A'
    assert format_currency(91905) == '$91,905'
    assert format_currency(None) == 'N/A'
    assert format_percent(22.5) == '22.5%'
    assert format_percent(None) == 'N/A%'
    assert format_distance(3.24) == '3.2 km'
    assert format_distance(None) == ''


def test_build_sections():
    profile = CensusProfile.model_validate({
        'name': 'Fresno County',
        'population': {'pop_census_apr2020': 1008654},
        'demographics': {'persons_under_18_percent': 27.6, 'white_alone_percent': 75.1},
        'socio_economic': {'median_household_income': 67756, 'median_gross_rent': None},
    })
    population, demographics, economics = build_sections(profile)

    assert population.rows[0].value == '1,008,654'
    assert [r.label for r in demographics.rows] == ['Under 18', '65+', 'Hispanic/Latino', 'White', 'Black']
    assert demographics.rows[0].value == '27.6%'
    assert demographics.rows[1].value == 'N/A%'
    # Only present economic figures are listed
    assert [(r.label, r.value) for r in economics.rows] == [('Household Income', '$67,756')]


def test_missing_population_is_na():
    population = build_sections(CensusProfile())[0]
    assert population.rows[0].value == 'N/A'


def test_sidebar_context():
    assert sidebar_context(None) == {'profile': None, 'instructions': INSTRUCTIONS}

    profile = CensusProfile.model_validate({'name': 'California', 'quick_fact_slug': 'CA'})
    context = sidebar_context(profile)
    assert context['title'] == 'California'
    assert context['quickfacts_url'] == quickfacts_url(profile)
    assert context['quickfacts_url'].endswith('/table/CA')
    assert len(context['sections']) == 3
