"""
Filter engine: narrowing order, sentinels, gender/type keywords, sorting and
free-text search.
"""

from nxtgen.filters import apply_filters, expand_query, search_colleges, type_keywords
from nxtgen.models import FilterCriteria

from conftest import make_college


def ids(colleges):
    return [college.id for college in colleges]


def sample():
    return [
        make_college(1, name="Andhra University College of Engineering", city="Visakhapatnam",
                     state="Andhra Pradesh", type="Government Engineering", rating=4.2, total_fees_min=40000),
        make_college(2, name="Sri Vishnu Engineering College for Women", city="Bhimavaram",
                     state="Andhra Pradesh", type="Private Engineering", rating=4.0, total_fees_min=90000),
        make_college(3, name="Boys Town Polytechnic", city="Nashik", location="Nashik Road",
                     state="Maharashtra", type="Private Polytechnic", rating=3.2, total_fees_min=30000),
        make_college(4, name="Osmania Medical College", city="Hyderabad",
                     state="Telangana", type="Government Medical", rating=4.5, total_fees_min=None),
        make_college(5, name="Govt Girls Degree College", location="Old City, Hyderabad",
                     state="Telangana", type="State Arts & Science", rating=None, total_fees_min=15000),
    ]


def test_default_criteria_is_identity():
    colleges = sample()
    assert apply_filters(colleges, FilterCriteria()) == colleges
    assert apply_filters(colleges) == colleges


def test_sentinel_labels_mean_no_filter():
    criteria = FilterCriteria(state="All States", district="All Districts", college_type="All Types", gender="all")
    assert ids(apply_filters(sample(), criteria)) == [1, 2, 3, 4, 5]


def test_input_list_is_not_mutated():
    colleges = sample()
    before = list(colleges)
    apply_filters(colleges, FilterCriteria(sort_by="rating", show_top_colleges=True))
    assert colleges == before


def test_empty_input():
    assert apply_filters([], FilterCriteria(state="Telangana")) == []


def test_state_is_case_insensitive_contains():
    assert ids(apply_filters(sample(), FilterCriteria(state="andhra"))) == [1, 2]


def test_district_matches_city_or_location():
    assert ids(apply_filters(sample(), FilterCriteria(district="Hyderabad"))) == [4, 5]
    assert ids(apply_filters(sample(), FilterCriteria(district="nashik road"))) == [3]


def test_women_filter():
    assert ids(apply_filters(sample(), FilterCriteria(gender="women"))) == [2, 5]


def test_men_filter_does_not_match_women():
    assert ids(apply_filters(sample(), FilterCriteria(gender="men"))) == [3]


def test_men_colleges_are_not_women_colleges():
    colleges = sample() + [
        make_college(6, name="Govt Men's College", state="Telangana", type="Government Degree"),
        make_college(7, name="St. Mens Hostel College", state="Kerala", type="Private"),
    ]
    assert ids(apply_filters(colleges, FilterCriteria(gender="women"))) == [2, 5]
    assert ids(apply_filters(colleges, FilterCriteria(gender="men"))) == [3, 6, 7]


def test_unknown_gender_is_ignored():
    assert ids(apply_filters(sample(), FilterCriteria(gender="other"))) == [1, 2, 3, 4, 5]


def test_type_keyword_table():
    assert ids(apply_filters(sample(), FilterCriteria(college_type="government"))) == [1, 4, 5]
    assert ids(apply_filters(sample(), FilterCriteria(college_type="Private"))) == [2, 3]
    assert ids(apply_filters(sample(), FilterCriteria(college_type="arts & science"))) == [5]
    assert type_keywords("Medical") == ("medical", "medicine", "health")


def test_arts_and_science_needs_arts():
    colleges = [
        make_college(1, name="Science and Technology University", type="Science & Technology University"),
        make_college(2, name="Loyola Arts and Science College", type="Private Arts and Science College"),
        make_college(3, name="Institute of Science", type="Deemed Science Institute"),
        make_college(4, name="Govt Degree College", type="Government Arts College"),
    ]
    assert ids(apply_filters(colleges, FilterCriteria(college_type="arts & science"))) == [2, 4]


def test_unknown_type_falls_back_to_substring():
    assert ids(apply_filters(sample(), FilterCriteria(college_type="Polytechnic College"))) == []
    assert ids(apply_filters(sample(), FilterCriteria(college_type="medical"))) == [4]
    assert type_keywords("Deemed Univ") == ("deemed univ",)


def test_top_colleges_keeps_rating_at_least_four():
    colleges = [
        make_college(1, rating=3.5),
        make_college(2, rating=4.0),
        make_college(3, rating=4.8),
        make_college(4, rating=None),
    ]
    assert ids(apply_filters(colleges, FilterCriteria(show_top_colleges=True))) == [3, 2]


def test_top_colleges_forces_rating_order():
    criteria = FilterCriteria(show_top_colleges=True, sort_by="fees_low")
    assert ids(apply_filters(sample(), criteria)) == [4, 1, 2]


def test_sort_by_rating_puts_null_last():
    assert ids(apply_filters(sample(), FilterCriteria(sort_by="rating"))) == [4, 1, 2, 3, 5]


def test_fees_low_is_stable_with_null_first():
    colleges = [
        make_college(1, total_fees_min=50000),
        make_college(2, total_fees_min=None),
        make_college(3, total_fees_min=50000),
        make_college(4, total_fees_min=10000),
    ]
    assert ids(apply_filters(colleges, FilterCriteria(sort_by="fees_low"))) == [2, 4, 1, 3]
    assert ids(apply_filters(colleges, FilterCriteria(sort_by="fees_high"))) == [1, 3, 4, 2]


def test_sort_by_placement():
    colleges = [
        make_college(1, placement_percentage=70.0),
        make_college(2, placement_percentage=95.0),
        make_college(3, placement_percentage=None),
    ]
    assert ids(apply_filters(colleges, FilterCriteria(sort_by="placement"))) == [2, 1, 3]


def test_unknown_sort_keeps_order():
    assert ids(apply_filters(sample(), FilterCriteria(sort_by="alphabetical"))) == [1, 2, 3, 4, 5]


def test_filters_combine_in_order():
    criteria = FilterCriteria(state="Telangana", college_type="government", sort_by="rating")
    assert ids(apply_filters(sample(), criteria)) == [4, 5]


def test_criteria_accepts_camel_case():
    criteria = FilterCriteria.model_validate(
        {"collegeType": "medical", "showTopColleges": True, "locationBased": True, "sortBy": "rating"}
    )
    assert criteria.college_type == "medical"
    assert criteria.show_top_colleges is True
    assert criteria.location_based is True
    assert criteria.sort_by == "rating"


def test_search_matches_any_text_column():
    assert ids(search_colleges(sample(), "hyderabad")) == [4, 5]
    assert ids(search_colleges(sample(), "MARAHASHTRA")) == []
    assert ids(search_colleges(sample(), "maharashtra")) == [3]


def test_search_empty_query_is_identity():
    colleges = sample()
    assert search_colleges(colleges, "") == colleges
    assert search_colleges(colleges, "   ") == colleges
    assert search_colleges(colleges, None) == colleges


def test_search_expands_short_codes():
    colleges = sample() + [make_college(6, name="Vasireddy Venkatadri Institute of Technology", city="Guntur")]
    assert ids(search_colleges(colleges, "vvit")) == [6]
    assert "vasireddy venkatadri institute of technology" in expand_query("VVIT")
    assert expand_query("warangal") == ["warangal"]
