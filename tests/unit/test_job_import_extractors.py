from __future__ import annotations

from careerhub.job_import.extractors.basic import basic_extract
from careerhub.job_import.extractors.heuristic import apply_heuristics, scan_tech_stack, split_page_title
from careerhub.job_import.extractors.structured import extract_structured, find_jobposting_jsonld
from careerhub.job_import.models import ExtractedJobFields
from careerhub.job_import.normalize import infer_employment_type, infer_experience_level, split_list_items
from tests.helpers.job_import import load_fixture


class TestStructuredExtraction:
    def test_maps_jobposting_fields(self):
        fields = extract_structured(load_fixture("html/job_posting_jsonld.html"))

        assert fields.title == "Senior Data Engineer"
        assert fields.company == "Globex"
        assert fields.description == "Build data pipelines. Own ETL"
        assert fields.location == "Amsterdam, North Holland, NL"
        assert fields.salary == "60000-80000 EUR"
        assert fields.employment_type == "perm"
        assert fields.tech_stack == ["Python", "SQL", "Airflow"]
        assert fields.required_skills == {"Python": 50, "SQL": 50, "Airflow": 50}
        assert fields.requirements == ["5+ years Python", "Strong SQL"]
        assert fields.responsibilities == ["Design pipelines", "Mentor engineers"]
        assert fields.benefits == ["Pension", "Remote days"]

    def test_page_without_jsonld_yields_defaults(self):
        fields = extract_structured(load_fixture("html/plain_job_page.html"))
        assert fields == ExtractedJobFields()

    def test_malformed_jsonld_block_is_skipped(self):
        html = (
            '<script type="application/ld+json">{not json</script>'
            '<script type="application/ld+json">{"@type": "JobPosting", "title": "Analyst"}</script>'
        )
        assert find_jobposting_jsonld(html) == {"@type": "JobPosting", "title": "Analyst"}

    def test_telecommute_without_address_is_remote(self):
        html = (
            '<script type="application/ld+json">'
            '{"@type": "JobPosting", "title": "Support Agent", "jobLocationType": "TELECOMMUTE"}'
            "</script>"
        )
        assert extract_structured(html).location == "Remote"


class TestHeuristicExtraction:
    def test_pipe_title_splits_role_and_company(self):
        assert split_page_title("Backend Engineer | Acme Corp") == ("Backend Engineer", "Acme Corp")

    def test_single_dash_title_splits(self):
        assert split_page_title("Designer - Initech") == ("Designer", "Initech")

    def test_multiple_dashes_leave_title_whole(self):
        assert split_page_title("Full-Stack Developer - Remote - EU") == ("Full-Stack Developer - Remote - EU", None)

    def test_tech_scan_respects_word_boundaries_and_vocabulary_order(self):
        text = "We use React with TypeScript, some C++ and JavaScript. Going forward: gopher."
        assert scan_tech_stack(text) == ["JavaScript", "TypeScript", "React", "C++"]

    def test_tech_scan_is_case_insensitive(self):
        assert scan_tech_stack("docker and KUBERNETES") == ["Docker", "Kubernetes"]

    def test_meta_description_page(self):
        fields = apply_heuristics(load_fixture("html/meta_description_page.html"), ExtractedJobFields())

        assert fields.title == "Junior Frontend Developer"
        assert fields.company == "Initech"
        assert fields.description == "Initech is hiring a junior frontend developer for a contract role."
        assert fields.tech_stack == ["TypeScript", "React", "CSS"]
        assert fields.required_skills == {"TypeScript": 50, "React": 50, "CSS": 50}
        assert fields.employment_type == "contract"
        assert fields.experience_level == "Entry Level"

    def test_does_not_overwrite_structured_values(self):
        base = ExtractedJobFields(title="Data Analyst", company="Umbrella", description="Crunch numbers.")
        fields = apply_heuristics(load_fixture("html/plain_job_page.html"), base)

        assert fields.title == "Data Analyst"
        assert fields.company == "Umbrella"
        assert fields.description == "Crunch numbers."


class TestBasicExtract:
    def test_plain_page_uses_title_and_docker_keyword(self):
        fields = basic_extract(load_fixture("html/plain_job_page.html"))

        assert fields.title == "Backend Engineer"
        assert fields.company == "Acme Corp"
        assert fields.tech_stack == ["Docker"]
        assert fields.required_skills == {"Docker": 50}
        assert fields.description == "No description extracted."
        assert fields.employment_type == "unknown"
        assert fields.experience_level == "Not specified"

    def test_structured_page_is_completed_by_heuristics(self):
        fields = basic_extract(load_fixture("html/job_posting_jsonld.html"))

        assert fields.title == "Senior Data Engineer"
        assert fields.experience_level == "Senior Level"
        assert fields.tech_stack == ["Python", "SQL", "Airflow"]

    def test_jsonld_only_page_scans_structured_description(self):
        fields = basic_extract(load_fixture("html/jsonld_only_page.html"))

        assert fields.title == "Full Stack Developer"
        assert fields.company == "Umbrella Labs"
        assert fields.tech_stack == ["Python", "Docker"]
        assert fields.required_skills == {"Python": 50, "Docker": 50}

    def test_empty_page_returns_placeholders(self):
        fields = basic_extract("")

        assert fields.title == "Untitled Job"
        assert fields.company == "Unknown Company"
        assert fields.description == "No description extracted."
        assert fields.location == "Remote"
        assert fields.salary == "Not specified"
        assert fields.tech_stack == []


class TestNormalizeHelpers:
    def test_employment_type_keywords(self):
        assert infer_employment_type(None, declared="FULL_TIME") == "perm"
        assert infer_employment_type("Summer internship in Utrecht") == "internship"
        assert infer_employment_type("Freelance assignment") == "freelance"
        assert infer_employment_type("Six month contract") == "contract"
        assert infer_employment_type("Work on internal tooling") == "unknown"

    def test_experience_level_from_title(self):
        assert infer_experience_level("Senior Backend Engineer") == "Senior Level"
        assert infer_experience_level("Engineering Manager") == "Management"
        assert infer_experience_level("Backend Engineer") == "Not specified"

    def test_split_list_items_handles_bullets_and_html(self):
        assert split_list_items("- one\n* two\n3. three") == ["one", "two", "three"]
        assert split_list_items("<ul><li>a</li><li>b</li><li>A</li></ul>") == ["a", "b"]
        assert split_list_items(None) == []
