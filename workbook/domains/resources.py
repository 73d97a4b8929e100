"""
ResourceService - people and organisations in Workbook.

In Workbook every person (employee, client, prospect, contact person) is a
"resource". Endpoint conventions used here:

  ResourcesRequest            fetch (JSON body filter), returns id stubs
  ResourceRequest[]           batch fetch, full records
  ResourceIdsRequest          mutate (POST), returns all ids
  ContactsForResourceRequest  fetch_query (query string only)
  ContactRequest              fetch (JSON body)
  ResourcePatchRequest        partial_update
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from workbook.constants import ALL_RESOURCE_TYPE_IDS, COMPANY_TYPES, resource_type_name
from workbook.domains.base import DomainService
from workbook.models import Contact, HierarchicalResource, Resource
from workbook.types import Outcome

logger = logging.getLogger(__name__)

IDS_TTL = 300
CONTACTS_TTL = 300


def _contains(value: Any, needle: str) -> bool:
    return isinstance(value, str) and needle in value.lower()


def _is_company(resource: Dict[str, Any]) -> bool:
    return resource.get("TypeId") in COMPANY_TYPES


def _matches_company_name(resource: Dict[str, Any], needle: str) -> bool:
    return _is_company(resource) and (
        _contains(resource.get("Name"), needle)
        or _contains(resource.get("ResourceFolder"), needle)
    )


class ResourceService(DomainService):

    async def search(self, params: Optional[Dict[str, Any]] = None) -> Outcome[List[Dict[str, Any]]]:
        """
        Filter resources, then load their complete records.

        Two steps: ResourcesRequest returns matching id stubs, ResourceRequest[]
        returns the full data. Without params this is get_all_complete().
        """
        if not params:
            return await self.get_all_complete()

        key = self.generate_cache_key("resources:search", params)
        hit = self._cached(key, "ResourcesRequest")
        if hit:
            return hit

        ids_response = await self.fetch("ResourcesRequest", params)
        if not ids_response.success:
            return ids_response
        if ids_response.data is None:
            return Outcome.fail("Failed to get filtered resource IDs", "not_found")

        ids = [item["Id"] for item in ids_response.data if isinstance(item, dict) and "Id" in item]
        if not ids:
            return Outcome.ok([])

        complete = await self.get_bulk_by_ids(ids)
        if complete.success and complete.data is not None:
            self.cache.set_resources(key, complete.data)
        return complete

    async def get_all(self) -> Outcome[List[Dict[str, Any]]]:
        return await self.search()

    async def get_bulk_by_ids(self, ids: List[int]) -> Outcome[List[Dict[str, Any]]]:
        return await self.fetch_batch("ResourceRequest", [{"Id": resource_id} for resource_id in ids])

    async def get_all_resource_ids(self, include_inactive: bool = True) -> Outcome[List[int]]:
        key = "resource:ids:all" if include_inactive else "resource:ids:active"
        hit = self._cached(key, "ResourceIdsRequest")
        if hit:
            return hit

        payload = {
            "Filter": "",
            "IsUnion": "true",
            "ExternalKeys": "",
            "HideInactive": not include_inactive,
            "InternalCustomers": False,
            "Active": None if include_inactive else True,
            "CustomerResponsibleResourceId": None,
            "DefaultAddContacts": False,
            "Favorite": None,
            "HideInternalCustomers": False,
            "MyClients": None,
            "ResourceType": ALL_RESOURCE_TYPE_IDS,
            "ResponsibleResourceId": None,
            "Union": "true",
        }
        response = await self.mutate("ResourceIdsRequest", payload)
        if response.success and response.data is not None:
            self.cache.set(key, response.data, IDS_TTL)
        return response

    async def get_all_complete(self) -> Outcome[List[Dict[str, Any]]]:
        """Every resource, via ResourceIdsRequest + ResourceRequest[]."""
        key = "resources:complete:all"
        hit = self._cached(key, "ResourceRequest[]")
        if hit:
            return hit

        ids_response = await self.get_all_resource_ids()
        if not ids_response.success:
            return ids_response
        if ids_response.data is None:
            return Outcome.fail("Failed to get resource IDs", "not_found")

        logger.debug("Retrieved %d resource ids", len(ids_response.data))
        resources = await self.get_bulk_by_ids(ids_response.data)
        if resources.success and resources.data is not None:
            self.cache.set(key, resources.data, IDS_TTL)
        return resources

    async def get_by_id(self, resource_id: int) -> Outcome[Dict[str, Any]]:
        key = self.generate_cache_key("resource:single", {"Id": resource_id})
        hit = self._cached(key, "ResourceRequest")
        if hit:
            return hit

        response = await self.fetch_one_by_batch("ResourceRequest", resource_id)
        if response.success and response.data is not None:
            self.cache.set_resources(key, response.data)
        return response

    async def _filter_all(
        self, predicate: Callable[[Dict[str, Any]], bool]
    ) -> Outcome[List[Dict[str, Any]]]:
        everything = await self.get_all()
        if not everything.success or everything.data is None:
            return everything
        matched = [resource for resource in everything.data if predicate(resource)]
        return Outcome.ok(matched, cached=everything.cached)

    async def search_by_email_domain(self, domain: str) -> Outcome[List[Dict[str, Any]]]:
        needle = domain.lower()
        return await self._filter_all(lambda r: _contains(r.get("Email"), needle))

    async def search_by_company(self, company_name: str) -> Outcome[List[Dict[str, Any]]]:
        needle = company_name.lower()
        return await self._filter_all(lambda r: _contains(r.get("ResourceFolder"), needle))

    async def search_by_name(self, query: str) -> Outcome[List[Dict[str, Any]]]:
        """Match on name, initials or email."""
        needle = query.lower()
        return await self._filter_all(
            lambda r: _contains(r.get("Name"), needle)
            or _contains(r.get("Initials"), needle)
            or _contains(r.get("Email"), needle)
        )

    async def get_active(self) -> Outcome[List[Dict[str, Any]]]:
        return await self._filter_all(lambda r: bool(r.get("Active")))

    async def get_by_type(self, type_id: int) -> Outcome[List[Dict[str, Any]]]:
        return await self._filter_all(lambda r: r.get("TypeId") == type_id)

    async def find_company_by_name(self, company_name: str) -> Outcome[Optional[Dict[str, Any]]]:
        """First company/client/prospect whose name or folder contains `company_name`."""
        matches = await self.find_companies_by_name(company_name)
        if not matches.success:
            return matches
        first = matches.data[0] if matches.data else None
        return Outcome.ok(first, cached=matches.cached)

    async def find_companies_by_name(self, name_pattern: str) -> Outcome[List[Dict[str, Any]]]:
        everything = await self.get_all_complete()
        if not everything.success or everything.data is None:
            return Outcome.fail(
                everything.error or "Failed to fetch complete resource dataset",
                everything.error_type or "not_found",
                status_code=everything.status_code,
            )
        needle = name_pattern.lower()
        companies = [r for r in everything.data if _matches_company_name(r, needle)]
        return Outcome.ok(companies, cached=everything.cached)

    async def find_companies_starting_with(self, prefix: str) -> Outcome[List[Dict[str, Any]]]:
        """Companies/clients/prospects whose name starts with `prefix`, e.g. "companies starting with A"."""
        everything = await self.get_all_complete()
        if not everything.success or everything.data is None:
            return Outcome.fail(
                everything.error or "Failed to fetch complete resource dataset",
                everything.error_type or "not_found",
                status_code=everything.status_code,
            )
        needle = prefix.lower()
        companies = [
            r for r in everything.data
            if _is_company(r) and isinstance(r.get("Name"), str) and r["Name"].lower().startswith(needle)
        ]
        return Outcome.ok(companies, cached=everything.cached)

    async def get_contacts_for_resource(
        self, resource_id: int, active: Optional[bool] = None
    ) -> Outcome[List[Dict[str, Any]]]:
        # ContactsForResourceRequest only reads query-string parameters
        params: Dict[str, Any] = {"ResourceId": resource_id}
        if active is not None:
            params["Active"] = active

        key = self.generate_cache_key("contacts:forResource", params)
        hit = self._cached(key, "ContactsForResourceRequest")
        if hit:
            return hit

        response = await self.fetch_query("ContactsForResourceRequest", params)
        if response.success and response.data is not None:
            self.cache.set(key, response.data, CONTACTS_TTL)
        return response

    async def get_contact(self, contact_id: int) -> Outcome[Dict[str, Any]]:
        key = self.generate_cache_key("contact:single", {"Id": contact_id})
        hit = self._cached(key, "ContactRequest")
        if hit:
            return hit

        response = await self.fetch("ContactRequest", {"Id": contact_id})
        if response.success and response.data is not None:
            self.cache.set(key, response.data, CONTACTS_TTL)
        return response

    async def get_hierarchy(self, resource_id: int) -> Outcome[HierarchicalResource]:
        """A resource with its contact persons and responsible employee."""
        resource = await self.get_by_id(resource_id)
        if not resource.success:
            return resource
        return await self._build_hierarchy(resource.data)

    async def get_hierarchies(
        self, resource_id: Optional[int] = None
    ) -> Outcome[List[HierarchicalResource]]:
        """
        Hierarchies for every company-type resource, or for `resource_id` only.

        Only companies, clients and prospects are expanded, so an id that
        points at an employee or contact person yields an empty list.
        """
        if resource_id is not None:
            single = await self.get_by_id(resource_id)
            if not single.success:
                return single
            resources = [single.data]
        else:
            everything = await self.get_all()
            if not everything.success or everything.data is None:
                return Outcome.fail(
                    everything.error or "Failed to fetch resources",
                    everything.error_type or "not_found",
                    status_code=everything.status_code,
                )
            resources = everything.data

        hierarchies = []
        for company in resources:
            if not isinstance(company, dict) or not _is_company(company):
                continue
            built = await self._build_hierarchy(company)
            if not built.success:
                return built
            hierarchies.append(built.data)
        return Outcome.ok(hierarchies)

    async def _build_hierarchy(self, resource: Any) -> Outcome[HierarchicalResource]:
        if not isinstance(resource, dict) or "Id" not in resource:
            return Outcome.fail("Invalid resource payload: expected an object with Id", "parse_error")

        contacts = await self.get_contacts_for_resource(resource["Id"])
        if not contacts.success:
            logger.warning("No contacts for resource %s: %s", resource["Id"], contacts.error)

        employee = None
        responsible_id = resource.get("ResponsibleResourceId")
        if responsible_id:
            employee_response = await self.get_by_id(responsible_id)
            if employee_response.success:
                employee = employee_response.data

        try:
            hierarchy = HierarchicalResource(
                resource=Resource.model_validate(resource),
                contacts=[Contact.model_validate(c) for c in (contacts.data or [])],
                responsible_employee=Resource.model_validate(employee) if employee else None,
            )
        except ValidationError as e:
            return Outcome.fail(f"Invalid resource payload: {e.error_count()} errors", "parse_error")
        return Outcome.ok(hierarchy)

    async def get_hierarchy_by_name(self, company_name: str) -> Outcome[Optional[HierarchicalResource]]:
        company = await self.find_company_by_name(company_name)
        if not company.success:
            return company
        if company.data is None:
            return Outcome.ok(None)
        return await self.get_hierarchy(company.data["Id"])

    async def update(
        self,
        resource_id: int,
        *,
        active: Optional[bool] = None,
        name: Optional[str] = None,
        email: Optional[str] = None,
        initials: Optional[str] = None,
        phone1: Optional[str] = None,
        responsible_resource_id: Optional[int] = None,
    ) -> Outcome[Any]:
        """
        Patch a resource. The API wants ids and booleans as strings.
        Cached entries for the resource are dropped on success.
        """
        patch: Dict[str, Any] = {"Id": str(resource_id)}
        if active is not None:
            patch["Active"] = "true" if active else "false"
        if name is not None:
            patch["Name"] = name
        if email is not None:
            patch["Email"] = email
        if initials is not None:
            patch["Initials"] = initials
        if phone1 is not None:
            patch["Phone1"] = phone1
        if responsible_resource_id is not None:
            patch["ResponsibleResourceId"] = str(responsible_resource_id)

        response = await self.partial_update("ResourcePatchRequest", patch)
        if response.success:
            self.clear_cache_for_resource(resource_id)
        return response

    async def mark_inactive(self, resource_id: int) -> Outcome[Any]:
        return await self.update(resource_id, active=False)

    async def mark_active(self, resource_id: int) -> Outcome[Any]:
        return await self.update(resource_id, active=True)

    async def get_stats(self) -> Outcome[Dict[str, Any]]:
        everything = await self.get_all_complete()
        if not everything.success or everything.data is None:
            return everything

        by_type: Dict[str, int] = {}
        active = 0
        for resource in everything.data:
            if resource.get("Active"):
                active += 1
            type_name = resource_type_name(resource.get("TypeId"))
            by_type[type_name] = by_type.get(type_name, 0) + 1

        total = len(everything.data)
        return Outcome.ok(
            {"total": total, "active": active, "inactive": total - active, "by_type": by_type},
            cached=everything.cached,
        )

    def clear_cache_for_resource(self, resource_id: int) -> None:
        self.cache.delete(self.generate_cache_key("resource:single", {"Id": resource_id}))
        self.cache.delete_prefix("resources:")
        self.cache.delete_prefix("resource:ids:")

    def clear_cache(self) -> None:
        self.cache.delete_prefix("resource")
        self.cache.delete_prefix("contact")
