"""Workbook resource type ids, as observed in the CRM data."""

from enum import IntEnum


class ResourceType(IntEnum):
    COMPANY = 1          # the owning company
    EMPLOYEE = 2
    CLIENT = 3
    SUPPLIER = 4
    PROSPECT = 6
    CONTACT_PERSON = 10


RESOURCE_TYPE_NAMES = {
    ResourceType.COMPANY: "Company",
    ResourceType.EMPLOYEE: "Employee",
    ResourceType.CLIENT: "Client",
    ResourceType.SUPPLIER: "Supplier",
    ResourceType.PROSPECT: "Prospect",
    ResourceType.CONTACT_PERSON: "Contact Person",
}

COMPANY_TYPES = (ResourceType.COMPANY, ResourceType.CLIENT, ResourceType.PROSPECT)

# Every type id ResourceIdsRequest accepts
ALL_RESOURCE_TYPE_IDS = list(range(1, 11))


def resource_type_name(type_id) -> str:
    try:
        return RESOURCE_TYPE_NAMES[ResourceType(type_id)]
    except (ValueError, KeyError):
        return f"Unknown ({type_id})"
