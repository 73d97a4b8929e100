"""
JobService - jobs, tasks, time, invoices and planning data.

Endpoint conventions used here:

  JobTeamAllRequest[], TaskRequest[],          mutate, batch shape (plain POST
  JobSimpleVisualizationRequest[],             with an array body)
  ETCResourceByJobIdVisualizationRequest[],
  TimeEntryTaskResourceSumVisualizationRequest[]
  TasksResourcePriceRequest,                   mutate (JSON body)
  CapacityVisualizationMultiRequest
  TasksRequest, ActivityVisualizationsRequest, fetch_query (query string only)
  ExpenditureOpenEntriesRequest, InvoicesRequest, ...
  JobCreateRequest, TaskInsertPositionRequest  replace (PUT)
  JobPatchRequest                              partial_update

Records are returned as the API sends them (PascalCase keys).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from workbook.domains.base import DomainService
from workbook.models import JobTeamMember
from workbook.service import query_value
from workbook.types import Outcome

logger = logging.getLogger(__name__)

# Seconds
VOLATILE_TTL = 60
JOB_TTL = 300
INVOICE_TTL = 600
ACTIVITY_TTL = 900
REFERENCE_TTL = 3600

DEFAULT_ACTIVITY_ID = 1120
DEFAULT_DELIVERY_DAYS = 90


def _iso(moment: datetime) -> str:
    """UTC timestamp in the API's format, e.g. 2024-05-01T09:30:00.000Z"""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JobService(DomainService):

    # ─────────────────────────────────────────────────────
    # Job team and job records
    # ─────────────────────────────────────────────────────

    async def get_job_team(self, job_id: int) -> Outcome[List[JobTeamMember]]:
        key = f"job-team-{job_id}"
        hit = self._cached(key, "JobTeamAllRequest[]")
        if hit:
            return hit

        response = await self.mutate("JobTeamAllRequest", [{"Id": job_id}], shape="batch")
        if not response.success:
            return response
        if response.data is None:
            return Outcome.fail("No job team data received", "not_found")

        try:
            members = [JobTeamMember.model_validate(item) for item in response.data]
        except ValidationError as e:
            return Outcome.fail(f"Invalid job team payload: {e.error_count()} errors", "parse_error")

        self.cache.set_jobs(key, members)
        return Outcome.ok(members)

    async def get_job_details(self, job_id: int) -> Outcome[Dict[str, Any]]:
        return await self._first_by_id(
            f"job-details-{job_id}", "JobSimpleVisualizationRequest", job_id, "Job not found"
        )

    async def get_resource_capacity(self, job_id: int) -> Outcome[List[Dict[str, Any]]]:
        """Estimated hours to complete per resource on the job."""
        return await self._cache_aside(
            f"resource-capacity-{job_id}",
            "ETCResourceByJobIdVisualizationRequest[]",
            lambda: self.mutate(
                "ETCResourceByJobIdVisualizationRequest", [{"Id": job_id}], shape="batch"
            ),
            "No resource capacity data received",
            JOB_TTL,
        )

    async def create_job(
        self,
        name: str,
        project_id: int,
        *,
        account_manager_resource_id: int = 27,
        job_manager_resource_id: int = 53,
        company_id: int = 1,
        start_date: Optional[str] = None,
        delivery_date: Optional[str] = None,
        job_status_id: str = "1",
        price_list_id: int = 1,
        team_id: int = 1,
        chargeable: bool = True,
        time_registration_allowed: int = 1,
        job_folder: Optional[str] = None,
        mandatory_dimensions: Optional[Mapping[str, str]] = None,
    ) -> Outcome[Dict[str, Any]]:
        """
        Create a job. Starts now and is due in 90 days unless dates are given.
        Every cached "job-" entry is dropped on success.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "Name": name,
            "ProjectId": project_id,
            "AccountManagerResourceId": account_manager_resource_id,
            "JobManagerResourceId": job_manager_resource_id,
            "CompanyId": company_id,
            "StartDate": start_date or _iso(now),
            "DeliveryDate": delivery_date or _iso(now + timedelta(days=DEFAULT_DELIVERY_DAYS)),
            "JobStatusId": job_status_id,
            "PriceListId": price_list_id,
            "TeamId": team_id,
            "Chargeable": chargeable,
            "TimeRegistrationAllowed": time_registration_allowed,
            "JobFolder": job_folder or name,
            "ContactResourceId": None,
            "CostingCodeId": None,
            "DebtorId": None,
            "FolderIds": [],
            "JobId": None,
            "MandatoryDimensions": dict(mandatory_dimensions or {"1": "1", "14": "6"}),
        }

        response = await self.replace("JobCreateRequest", payload)
        if not response.success:
            return response
        if not isinstance(response.data, dict):
            return Outcome.fail("No job creation data received", "not_found")

        self.cache.delete_prefix("job-")
        job_id = response.data.get("JobId")
        return Outcome.ok({
            "job_id": job_id,
            "message": f'Job "{name}" created successfully with ID {job_id}',
        })

    async def update_job(
        self,
        job_id: int,
        *,
        name: Optional[str] = None,
        status_id: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        responsible_id: Optional[int] = None,
        project_id: Optional[int] = None,
        billable: Optional[bool] = None,
    ) -> Outcome[Dict[str, Any]]:
        """Patch the common job fields. Unset arguments are left out of the patch."""
        fields = {
            "JobName": name,
            "StatusId": status_id,
            "StartDate": start_date,
            "EndDate": end_date,
            "ResponsibleId": responsible_id,
            "ProjectId": project_id,
            "Billable": billable,
        }
        patch = {"Id": job_id, **{k: v for k, v in fields.items() if v is not None}}

        response = await self.partial_update("JobPatchRequest", patch)
        if not response.success:
            return response
        if not isinstance(response.data, dict):
            return Outcome.fail("No job update data received", "not_found")

        self.cache.delete_prefix("job-")
        return response

    async def patch_job(self, job_id: int, **fields: Any) -> Outcome[Dict[str, Any]]:
        """
        Update any job field, e.g. patch_job(12, JobName="Rebrand").
        Every cached "job-" entry is dropped on success.
        """
        response = await self.partial_update("JobPatchRequest", {"Id": job_id, **fields})
        if not response.success:
            return response
        if not isinstance(response.data, dict):
            return Outcome.fail("No job patch response received", "not_found")

        removed = self.cache.delete_prefix("job-")
        logger.debug("Job %s patched, dropped %d cached entries", job_id, removed)

        job_name = response.data.get("JobName")
        return Outcome.ok({
            "job_id": response.data.get("Id"),
            "job_name": job_name,
            "message": f"Job {response.data.get('Id')} ({job_name}) updated successfully",
        })

    # ─────────────────────────────────────────────────────
    # Tasks and activities
    # ─────────────────────────────────────────────────────

    async def get_job_tasks(self, job_id: int, active: bool = True) -> Outcome[List[Dict[str, Any]]]:
        return await self._cache_aside(
            f"job-tasks-{job_id}-{query_value(active)}",
            "TasksRequest",
            lambda: self.fetch_query("TasksRequest", {"Active": active, "JobId": job_id}),
            "No task data received",
            JOB_TTL,
        )

    async def get_task(self, task_id: int) -> Outcome[Dict[str, Any]]:
        return await self._first_by_id(f"task-{task_id}", "TaskRequest", task_id, "Task not found")

    async def get_task_resource_prices(self, task_ids: Sequence[int]) -> Outcome[List[Dict[str, Any]]]:
        ids = list(task_ids)
        return await self._cache_aside(
            "task-prices-" + "-".join(str(i) for i in ids),
            "TasksResourcePriceRequest",
            lambda: self.mutate("TasksResourcePriceRequest", {"Ids": ids}),
            "No task resource price data received",
            JOB_TTL,
        )

    async def get_activities(
        self, job_id: Optional[int] = None, active: bool = True
    ) -> Outcome[List[Dict[str, Any]]]:
        params: Dict[str, Any] = {"Active": active}
        if job_id:
            params["JobId"] = job_id

        return await self._cache_aside(
            f"activities-{job_id or 'all'}-{query_value(active)}",
            "ActivityVisualizationsRequest",
            lambda: self.fetch_query("ActivityVisualizationsRequest", params),
            "No activities data received",
            ACTIVITY_TTL,
        )

    async def insert_task(
        self,
        plan_id: int,
        task_name: str,
        *,
        phase_number: int = 1,
        activity_id: int = DEFAULT_ACTIVITY_ID,
        start_date: Optional[str] = None,
        work_days: int = 5,
        priority_id: int = 2,
        after_task_number: Optional[int] = None,
        place_last: bool = False,
    ) -> Outcome[Dict[str, Any]]:
        payload: Dict[str, Any] = {
            "PlanId": plan_id,
            "TaskName": task_name,
            "PhaseNumber": phase_number,
            "ActivityId": activity_id,
            "StartDate": start_date or _iso(datetime.now(timezone.utc)),
            "WorkDays": work_days,
            "PriorityId": priority_id,
            "PlaceLast": place_last,
        }
        if after_task_number:
            payload["AfterTaskNumber"] = after_task_number

        response = await self.replace("TaskInsertPositionRequest", payload)
        if not response.success:
            return response
        if response.data is None:
            return Outcome.fail("No task insertion data received", "not_found")
        return response

    # ─────────────────────────────────────────────────────
    # Time and capacity
    # ─────────────────────────────────────────────────────

    async def get_time_entries(self, job_id: int) -> Outcome[List[Dict[str, Any]]]:
        """Open expenditure entries (time and expenses) on the job."""
        return await self._cache_aside(
            f"time-entries-{job_id}",
            "ExpenditureOpenEntriesRequest",
            lambda: self.fetch_query("ExpenditureOpenEntriesRequest", {"JobId": job_id}),
            "No time entries data received",
            VOLATILE_TTL,
        )

    async def get_time_entry_task_resource_sum(
        self, tasks: Sequence[Tuple[int, bool]]
    ) -> Outcome[List[Dict[str, Any]]]:
        """Registered hours per resource for each (task_id, has_time_entry) pair. Not cached."""
        payload = [{"Id": task_id, "HasTimeEntry": has_entry} for task_id, has_entry in tasks]
        response = await self.mutate(
            "TimeEntryTaskResourceSumVisualizationRequest", payload, shape="batch"
        )
        if response.success and response.data is None:
            return Outcome.fail("No time entry data received", "not_found")
        return response

    async def get_capacity_visualization(
        self,
        references: Sequence[Tuple[int, int]],
        *,
        include_absence: bool = True,
        include_current_hours: bool = True,
        include_empty_capacity: bool = True,
        period_type: int = 1,
    ) -> Outcome[List[Dict[str, Any]]]:
        """Day-by-day capacity for (resource_id, task_id) pairs. Not cached."""
        payload = {
            "References": [
                {"ResourceId": resource_id, "TaskId": task_id} for resource_id, task_id in references
            ],
            "IncludeAbsence": include_absence,
            "IncludeCurrentHours": include_current_hours,
            "IncludeEmptyCapacity": include_empty_capacity,
            "PeriodType": period_type,
        }
        response = await self.mutate("CapacityVisualizationMultiRequest", payload)
        if response.success and response.data is None:
            return Outcome.fail("No capacity data received", "not_found")
        return response

    # ─────────────────────────────────────────────────────
    # Finance
    # ─────────────────────────────────────────────────────

    async def get_invoices(self, job_id: int) -> Outcome[List[Dict[str, Any]]]:
        return await self._cache_aside(
            f"invoices-{job_id}",
            "InvoicesRequest",
            lambda: self.fetch_query("InvoicesRequest", {"JobId": job_id}),
            "No invoices data received",
            JOB_TTL,
        )

    async def get_invoice(self, invoice_id: int) -> Outcome[Dict[str, Any]]:
        return await self._cache_aside(
            f"invoice-{invoice_id}",
            "InvoiceRequest",
            lambda: self.fetch_query("InvoiceRequest", {"Id": invoice_id}),
            "Invoice not found",
            INVOICE_TTL,
        )

    async def get_invoice_payment_status(self, invoice_id: int) -> Outcome[Dict[str, Any]]:
        return await self._cache_aside(
            f"invoice-payment-{invoice_id}",
            "InvoicePaymentStatusRequest",
            lambda: self.fetch_query("InvoicePaymentStatusRequest", {"Id": invoice_id}),
            "Invoice payment status not found",
            VOLATILE_TTL,
        )

    async def get_expenditure_summary(
        self, job_id: int, show_in_company_currency: bool = False
    ) -> Outcome[List[Dict[str, Any]]]:
        """Quoted, actual and billed amounts per activity group."""
        return await self._cache_aside(
            f"expenditure-summary-{job_id}-{query_value(show_in_company_currency)}",
            "ExpenditureSummaryHoursAndCostRequest",
            # This endpoint wants 1/0, not true/false
            lambda: self.fetch_query(
                "ExpenditureSummaryHoursAndCostRequest",
                {"JobId": job_id, "ShowInCompanyCurrency": int(show_in_company_currency)},
            ),
            "No expenditure summary data received",
            JOB_TTL,
        )

    async def get_department_profit_split(
        self, job_id: int, show_in_company_currency: bool = False, department_grouping: int = 1
    ) -> Outcome[List[Dict[str, Any]]]:
        return await self._cache_aside(
            f"dept-profit-split-{job_id}-{query_value(show_in_company_currency)}-{department_grouping}",
            "ExpenditureSummaryDepartmentProfitSplitVisualizationRequest",
            lambda: self.fetch_query(
                "ExpenditureSummaryDepartmentProfitSplitVisualizationRequest",
                {
                    "JobId": job_id,
                    "ShowInCompanyCurrency": show_in_company_currency,
                    "DepartmentGrouping": department_grouping,
                },
            ),
            "No department profit split data received",
            JOB_TTL,
        )

    # ─────────────────────────────────────────────────────
    # Reference data
    # ─────────────────────────────────────────────────────

    async def get_price_lists(self) -> Outcome[List[Dict[str, Any]]]:
        return await self._cache_aside(
            "price-lists",
            "PriceListsJobRequest",
            lambda: self.fetch_query("PriceListsJobRequest"),
            "No price lists data received",
            REFERENCE_TTL,
        )

    async def get_tags(self) -> Outcome[List[Dict[str, Any]]]:
        return await self._cache_aside(
            "tags-all",
            "TagsRequest",
            lambda: self.fetch_query("TagsRequest"),
            "No tags data received",
            REFERENCE_TTL,
        )

    async def get_departments(self, company_id: int = 1) -> Outcome[List[Dict[str, Any]]]:
        return await self._cache_aside(
            f"departments-{company_id}",
            "DepartmentsRequest",
            lambda: self.fetch_query("DepartmentsRequest", {"CompanyId": company_id}),
            "No departments data received",
            REFERENCE_TTL,
        )

    async def get_job_types(
        self, active: bool = True, company_id: int = 1
    ) -> Outcome[List[Dict[str, Any]]]:
        return await self._cache_aside(
            f"job-types-{query_value(active)}-{company_id}",
            "JobTypesRequest",
            lambda: self.fetch_query("JobTypesRequest", {"Active": active, "CompanyId": company_id}),
            "No job types data received",
            REFERENCE_TTL,
        )

    async def _first_by_id(
        self, key: str, endpoint: str, item_id: int, missing_error: str
    ) -> Outcome[Dict[str, Any]]:
        """Single record through a batch endpoint, sent as a plain POST."""
        hit = self._cached(key, f"{endpoint}[]")
        if hit:
            return hit

        response = await self.mutate(endpoint, [{"Id": item_id}], shape="batch")
        if not response.success:
            return response
        if not response.data:
            return Outcome.fail(missing_error, "not_found")

        record = response.data[0]
        self.cache.set(key, record, JOB_TTL)
        return Outcome.ok(record)
