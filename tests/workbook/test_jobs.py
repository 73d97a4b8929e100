"""Tests for JobService."""

import json
import re

import pytest

from workbook.cache import CacheManager
from workbook.domains import JobService
from workbook.models import JobTeamMember
from workbook.transport import StubTransport
from workbook.types import Outcome

REPLY = "/api/json/reply/"
TEAM_PATH = REPLY + "JobTeamAllRequest[]"
PATCH_PATH = REPLY + "JobPatchRequest"

TEAM = [
    {"Id": 1, "JobId": 12, "ResourceId": 2, "BonusPart": 0.5, "JobAccess": True},
    {"Id": 2, "JobId": 12, "ResourceId": 5, "PortalAccessType": 1},
]
TASKS = [{"Id": 100, "TaskName": "Kickoff", "JobId": 12}, {"Id": 101, "TaskName": "Design"}]
JOB = {"Id": 12, "JobId": 12, "JobName": "Rebrand", "CustomerName": "ACME A/S"}

ISO_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def make_service(service_config, responses):
    stub = StubTransport(responses=responses)
    return JobService(service_config, stub, CacheManager()), stub


class TestJobTeam:
    @pytest.mark.asyncio
    async def test_get_job_team(self, service_config):
        service, stub = make_service(service_config, {TEAM_PATH: Outcome.ok(TEAM)})

        outcome = await service.get_job_team(12)

        assert outcome.success is True
        assert [m.ResourceId for m in outcome.data] == [2, 5]
        assert isinstance(outcome.data[0], JobTeamMember)
        assert json.loads(stub.last_request.body) == [{"Id": 12}]

    @pytest.mark.asyncio
    async def test_job_team_is_plain_post(self, service_config):
        service, stub = make_service(service_config, {TEAM_PATH: Outcome.ok(TEAM)})

        await service.get_job_team(12)

        request = stub.last_request
        assert request.method == "POST"
        assert request.path == TEAM_PATH
        assert "X-HTTP-METHOD-OVERRIDE" not in request.headers

    @pytest.mark.asyncio
    async def test_job_team_is_cached(self, service_config):
        service, stub = make_service(service_config, {TEAM_PATH: Outcome.ok(TEAM)})

        await service.get_job_team(12)
        outcome = await service.get_job_team(12)

        assert outcome.cached is True
        assert len(stub.requests) == 1
        assert service.cache.keys() == ["job-team-12"]

    @pytest.mark.asyncio
    async def test_missing_data(self, service_config):
        service, _ = make_service(service_config, {TEAM_PATH: Outcome.ok(None)})

        outcome = await service.get_job_team(12)

        assert outcome.success is False
        assert outcome.error == "No job team data received"

    @pytest.mark.asyncio
    async def test_invalid_payload_is_parse_error(self, service_config):
        service, _ = make_service(service_config, {TEAM_PATH: Outcome.ok([{"Id": "x"}])})

        outcome = await service.get_job_team(12)

        assert outcome.success is False
        assert outcome.error_type == "parse_error"

    @pytest.mark.asyncio
    async def test_failure_passes_through(self, service_config):
        failure = Outcome.fail("Request timeout", "timeout")
        service, _ = make_service(service_config, {TEAM_PATH: failure})

        assert await service.get_job_team(12) == failure


class TestBatchLookups:
    @pytest.mark.asyncio
    async def test_get_job_details_unwraps_first_record(self, service_config):
        path = REPLY + "JobSimpleVisualizationRequest[]"
        service, stub = make_service(service_config, {path: Outcome.ok([JOB])})

        outcome = await service.get_job_details(12)

        assert outcome.data == JOB
        assert stub.last_request.method == "POST"
        assert "X-HTTP-METHOD-OVERRIDE" not in stub.last_request.headers
        assert stub.last_request.body == b'[{"Id":12}]'

    @pytest.mark.asyncio
    async def test_get_job_details_empty_is_not_found(self, service_config):
        path = REPLY + "JobSimpleVisualizationRequest[]"
        service, _ = make_service(service_config, {path: Outcome.ok([])})

        outcome = await service.get_job_details(12)

        assert outcome.success is False
        assert outcome.error == "Job not found"
        assert service.cache.keys() == []

    @pytest.mark.asyncio
    async def test_get_task_is_cached(self, service_config):
        service, stub = make_service(service_config, {REPLY + "TaskRequest[]": Outcome.ok(TASKS[:1])})

        await service.get_task(100)
        outcome = await service.get_task(100)

        assert outcome.data == TASKS[0]
        assert outcome.cached is True
        assert len(stub.requests) == 1

    @pytest.mark.asyncio
    async def test_get_task_missing(self, service_config):
        service, _ = make_service(service_config, {REPLY + "TaskRequest[]": Outcome.ok(None)})

        outcome = await service.get_task(100)

        assert outcome.error == "Task not found"

    @pytest.mark.asyncio
    async def test_get_resource_capacity(self, service_config):
        path = REPLY + "ETCResourceByJobIdVisualizationRequest[]"
        rows = [{"Id": 1, "JobId": 12, "Hours": 7.5}]
        service, stub = make_service(service_config, {path: Outcome.ok(rows)})

        outcome = await service.get_resource_capacity(12)

        assert outcome.data == rows
        assert stub.last_request.path == path

    @pytest.mark.asyncio
    async def test_get_task_resource_prices(self, service_config):
        path = REPLY + "TasksResourcePriceRequest"
        service, stub = make_service(service_config, {path: Outcome.ok([{"TaskId": 100}])})

        await service.get_task_resource_prices([100, 101])

        assert json.loads(stub.last_request.body) == {"Ids": [100, 101]}
        assert service.cache.keys() == ["task-prices-100-101"]


class TestQueryStringReads:
    @pytest.mark.asyncio
    async def test_get_job_tasks(self, service_config):
        service, stub = make_service(service_config, {REPLY + "TasksRequest": Outcome.ok(TASKS)})

        outcome = await service.get_job_tasks(12)

        request = stub.last_request
        assert outcome.data == TASKS
        assert request.method == "GET"
        assert request.path == REPLY + "TasksRequest?Active=true&JobId=12"
        assert request.body == b""
        assert service.cache.keys() == ["job-tasks-12-true"]

    @pytest.mark.asyncio
    async def test_get_activities_for_all_jobs(self, service_config):
        path = REPLY + "ActivityVisualizationsRequest"
        service, stub = make_service(service_config, {path: Outcome.ok([{"Id": 1120}])})

        await service.get_activities(active=False)

        assert stub.last_request.path == path + "?Active=false"
        assert service.cache.keys() == ["activities-all-false"]

    @pytest.mark.asyncio
    async def test_get_activities_for_job(self, service_config):
        path = REPLY + "ActivityVisualizationsRequest"
        service, stub = make_service(service_config, {path: Outcome.ok([])})

        outcome = await service.get_activities(12)

        assert outcome.data == []
        assert stub.last_request.path == path + "?Active=true&JobId=12"

    @pytest.mark.asyncio
    async def test_get_time_entries(self, service_config):
        path = REPLY + "ExpenditureOpenEntriesRequest"
        service, stub = make_service(service_config, {path: Outcome.ok([{"Id": 5}])})

        await service.get_time_entries(12)

        assert stub.last_request.path == path + "?JobId=12"

    @pytest.mark.asyncio
    async def test_invoice_reads(self, service_config):
        service, stub = make_service(service_config, {
            REPLY + "InvoicesRequest": Outcome.ok([{"Id": 9}]),
            REPLY + "InvoiceRequest": Outcome.ok({"Id": 9, "AmountTot": 1250.0}),
            REPLY + "InvoicePaymentStatusRequest": Outcome.ok({"Id": 9, "PaymentStatus": 2}),
        })

        invoices = await service.get_invoices(12)
        invoice = await service.get_invoice(9)
        status = await service.get_invoice_payment_status(9)

        assert invoices.data == [{"Id": 9}]
        assert invoice.data["AmountTot"] == 1250.0
        assert status.data["PaymentStatus"] == 2
        assert [r.path for r in stub.requests] == [
            REPLY + "InvoicesRequest?JobId=12",
            REPLY + "InvoiceRequest?Id=9",
            REPLY + "InvoicePaymentStatusRequest?Id=9",
        ]

    @pytest.mark.asyncio
    async def test_missing_invoice(self, service_config):
        service, _ = make_service(service_config, {REPLY + "InvoiceRequest": Outcome.ok(None)})

        outcome = await service.get_invoice(9)

        assert outcome.success is False
        assert outcome.error == "Invoice not found"

    @pytest.mark.asyncio
    async def test_expenditure_summary_uses_numeric_flag(self, service_config):
        path = REPLY + "ExpenditureSummaryHoursAndCostRequest"
        service, stub = make_service(service_config, {path: Outcome.ok([])})

        await service.get_expenditure_summary(12, show_in_company_currency=True)

        assert stub.last_request.path == path + "?JobId=12&ShowInCompanyCurrency=1"

    @pytest.mark.asyncio
    async def test_department_profit_split(self, service_config):
        path = REPLY + "ExpenditureSummaryDepartmentProfitSplitVisualizationRequest"
        service, stub = make_service(service_config, {path: Outcome.ok([])})

        await service.get_department_profit_split(12)

        assert stub.last_request.path == (
            path + "?JobId=12&ShowInCompanyCurrency=false&DepartmentGrouping=1"
        )

    @pytest.mark.asyncio
    async def test_reference_data(self, service_config):
        service, stub = make_service(service_config, {
            REPLY + "PriceListsJobRequest": Outcome.ok([{"Id": 1}]),
            REPLY + "TagsRequest": Outcome.ok([{"Id": 3}]),
            REPLY + "DepartmentsRequest": Outcome.ok([{"Id": 4}]),
            REPLY + "JobTypesRequest": Outcome.ok([{"Id": 5}]),
        })

        await service.get_price_lists()
        await service.get_tags()
        await service.get_departments()
        await service.get_job_types(active=False, company_id=2)

        assert [r.path for r in stub.requests] == [
            REPLY + "PriceListsJobRequest",
            REPLY + "TagsRequest",
            REPLY + "DepartmentsRequest?CompanyId=1",
            REPLY + "JobTypesRequest?Active=false&CompanyId=2",
        ]
        assert all(r.method == "GET" for r in stub.requests)
        assert sorted(service.cache.keys()) == [
            "departments-1", "job-types-false-2", "price-lists", "tags-all",
        ]

    @pytest.mark.asyncio
    async def test_reads_are_cached(self, service_config):
        service, stub = make_service(service_config, {REPLY + "TagsRequest": Outcome.ok([])})

        await service.get_tags()
        outcome = await service.get_tags()

        assert outcome.cached is True
        assert outcome.data == []
        assert len(stub.requests) == 1

    @pytest.mark.asyncio
    async def test_absent_data_is_reported(self, service_config):
        service, _ = make_service(service_config, {REPLY + "DepartmentsRequest": Outcome.ok(None)})

        outcome = await service.get_departments()

        assert outcome.success is False
        assert outcome.error == "No departments data received"
        assert outcome.error_type == "not_found"


class TestPlanning:
    @pytest.mark.asyncio
    async def test_time_entry_task_resource_sum(self, service_config):
        path = REPLY + "TimeEntryTaskResourceSumVisualizationRequest[]"
        service, stub = make_service(service_config, {path: Outcome.ok([{"TaskId": 100}])})

        outcome = await service.get_time_entry_task_resource_sum([(100, True), (101, False)])

        assert outcome.data == [{"TaskId": 100}]
        assert stub.last_request.method == "POST"
        assert json.loads(stub.last_request.body) == [
            {"Id": 100, "HasTimeEntry": True},
            {"Id": 101, "HasTimeEntry": False},
        ]
        assert service.cache.keys() == []

    @pytest.mark.asyncio
    async def test_capacity_visualization(self, service_config):
        path = REPLY + "CapacityVisualizationMultiRequest"
        service, stub = make_service(service_config, {path: Outcome.ok([])})

        await service.get_capacity_visualization([(2, 100)], period_type=2)

        assert json.loads(stub.last_request.body) == {
            "References": [{"ResourceId": 2, "TaskId": 100}],
            "IncludeAbsence": True,
            "IncludeCurrentHours": True,
            "IncludeEmptyCapacity": True,
            "PeriodType": 2,
        }

    @pytest.mark.asyncio
    async def test_capacity_without_data(self, service_config):
        path = REPLY + "CapacityVisualizationMultiRequest"
        service, _ = make_service(service_config, {path: Outcome.ok(None)})

        outcome = await service.get_capacity_visualization([(2, 100)])

        assert outcome.error == "No capacity data received"


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_job_is_put(self, service_config):
        path = REPLY + "JobCreateRequest"
        service, stub = make_service(service_config, {path: Outcome.ok({"JobId": 77})})
        service.cache.set("job-details-12", JOB)

        outcome = await service.create_job("Rebrand", 5)

        request = stub.last_request
        body = json.loads(request.body)
        assert request.method == "PUT"
        assert "X-HTTP-METHOD-OVERRIDE" not in request.headers
        assert body["Name"] == "Rebrand"
        assert body["JobFolder"] == "Rebrand"
        assert body["ProjectId"] == 5
        assert body["MandatoryDimensions"] == {"1": "1", "14": "6"}
        assert ISO_UTC.match(body["StartDate"])
        assert ISO_UTC.match(body["DeliveryDate"])
        assert body["DeliveryDate"] > body["StartDate"]
        assert outcome.data == {
            "job_id": 77,
            "message": 'Job "Rebrand" created successfully with ID 77',
        }
        assert service.cache.keys() == []

    @pytest.mark.asyncio
    async def test_create_job_keeps_explicit_dates(self, service_config):
        path = REPLY + "JobCreateRequest"
        service, stub = make_service(service_config, {path: Outcome.ok({"JobId": 1})})

        await service.create_job(
            "Audit", 5, start_date="2025-01-01T00:00:00.000Z", delivery_date="2025-02-01T00:00:00.000Z"
        )

        body = json.loads(stub.last_request.body)
        assert body["StartDate"] == "2025-01-01T00:00:00.000Z"
        assert body["DeliveryDate"] == "2025-02-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_create_job_without_response(self, service_config):
        service, _ = make_service(service_config, {REPLY + "JobCreateRequest": Outcome.ok(None)})

        outcome = await service.create_job("Rebrand", 5)

        assert outcome.error == "No job creation data received"

    @pytest.mark.asyncio
    async def test_insert_task(self, service_config):
        path = REPLY + "TaskInsertPositionRequest"
        service, stub = make_service(service_config, {path: Outcome.ok({"Id": 200, "TaskNumber": 4})})

        outcome = await service.insert_task(
            31, "QA", start_date="2025-03-03T08:00:00.000Z", after_task_number=3
        )

        body = json.loads(stub.last_request.body)
        assert stub.last_request.method == "PUT"
        assert body == {
            "PlanId": 31,
            "TaskName": "QA",
            "PhaseNumber": 1,
            "ActivityId": 1120,
            "StartDate": "2025-03-03T08:00:00.000Z",
            "WorkDays": 5,
            "PriorityId": 2,
            "PlaceLast": False,
            "AfterTaskNumber": 3,
        }
        assert outcome.data == {"Id": 200, "TaskNumber": 4}

    @pytest.mark.asyncio
    async def test_update_job_sends_only_set_fields(self, service_config):
        service, stub = make_service(service_config, {PATCH_PATH: Outcome.ok({"Id": 12, "JobName": "X"})})
        service.cache.set("job-tasks-12-true", TASKS)

        outcome = await service.update_job(12, name="X", billable=False)

        assert json.loads(stub.last_request.body) == {
            "Patch": {"Id": 12, "JobName": "X", "Billable": False}
        }
        assert outcome.data == {"Id": 12, "JobName": "X"}
        assert service.cache.keys() == []

    @pytest.mark.asyncio
    async def test_patch_job(self, service_config):
        service, stub = make_service(
            service_config, {PATCH_PATH: Outcome.ok({"Id": 12, "JobName": "Rebrand"})}
        )

        outcome = await service.patch_job(12, JobName="Rebrand")

        assert stub.last_request.method == "PATCH"
        assert json.loads(stub.last_request.body) == {"Patch": {"Id": 12, "JobName": "Rebrand"}}
        assert outcome.data == {
            "job_id": 12,
            "job_name": "Rebrand",
            "message": "Job 12 (Rebrand) updated successfully",
        }

    @pytest.mark.asyncio
    async def test_patch_drops_job_cache(self, service_config):
        service, _ = make_service(
            service_config,
            {TEAM_PATH: Outcome.ok(TEAM), PATCH_PATH: Outcome.ok({"Id": 12, "JobName": "X"})},
        )
        await service.get_job_team(12)
        service.cache.set("resource:single:abc", {})

        await service.patch_job(12, JobName="X")

        assert service.cache.keys() == ["resource:single:abc"]

    @pytest.mark.asyncio
    async def test_empty_patch_response(self, service_config):
        service, _ = make_service(service_config, {PATCH_PATH: Outcome.ok(None)})

        outcome = await service.patch_job(12, JobName="X")

        assert outcome.success is False
        assert outcome.error == "No job patch response received"
