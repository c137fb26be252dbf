"""
Task draft and client-side validation.

A ``TaskDraft`` is the record a technician fills in during a visit: fifteen
text/date fields plus the photos in an :class:`~fieldtask.buffer.ImageBuffer`.
Python attributes are snake_case; the names used on the wire are listed in
``FIELDS`` in the order they are sent.

``validate()`` never raises. It returns the list of violations so the caller
can show the first one and keep the submit button disabled until the list is
empty.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .buffer import ImageBuffer, MAX_IMAGES

NO_IMAGES_MESSAGE = 'Please add at least one image'

# datetime-local form used by the backend for job timestamps
JOB_DATETIME_FORMAT = '%Y-%m-%dT%H:%M'


@dataclass(frozen=True)
class DraftField:
    attr: str
    wire_name: str
    label: str
    required: bool = True
    is_datetime: bool = False


FIELDS: Tuple[DraftField, ...] = (
    DraftField('organization_name', 'organizationName', 'Organization Name'),
    DraftField('product_name', 'productName', 'Product Name'),
    DraftField('additional_info', 'additionalInfo', 'Additional Info'),
    DraftField('remarks', 'remarks', 'Remarks'),
    DraftField('machine_name', 'machineName', 'Machine Name'),
    DraftField('machine_manufacturer', 'machineManufacturer', 'Machine Manufacturer'),
    DraftField('machine_serial_number', 'machineSerialNumber', 'Machine Serial Number'),
    DraftField('machine_model', 'machineModel', 'Machine Model'),
    DraftField('contact_person_name', 'contactPersonName', 'Contact Person Name'),
    DraftField('contact_person_mobile_number', 'contactPersonMobileNumber', 'Contact Mobile Number'),
    DraftField('company_address', 'companyAddress', 'Company Address'),
    DraftField('ticket_number', 'ticketNumber', 'Ticket Number', required=False),
    DraftField('customer_details', 'customerDetails', 'Customer Details', required=False),
    DraftField('job_started_datetime', 'jobStartedDateTime', 'Job Started Date & Time',
               required=False, is_datetime=True),
    DraftField('job_closed_datetime', 'jobClosedDateTime', 'Job Closed Date & Time',
               required=False, is_datetime=True),
)

FIELD_NAMES: Tuple[str, ...] = tuple(f.wire_name for f in FIELDS)
REQUIRED_FIELDS: Tuple[str, ...] = tuple(f.wire_name for f in FIELDS if f.required)

_BY_NAME: Dict[str, DraftField] = {}
for _f in FIELDS:
    _BY_NAME[_f.attr] = _f
    _BY_NAME[_f.wire_name] = _f

FieldValue = Union[str, datetime.datetime, None]


@dataclass(frozen=True)
class MissingField:
    """A required field is empty."""

    name: str

    @property
    def message(self) -> str:
        return f'{_BY_NAME[self.name].label} is required'


@dataclass(frozen=True)
class NoImages:
    """The draft has no photos."""

    @property
    def message(self) -> str:
        return NO_IMAGES_MESSAGE


Violation = Union[MissingField, NoImages]


def lookup_field(name: str) -> DraftField:
    """Return the field definition for a wire or attribute name.

    Raises:
        KeyError: if ``name`` is not a draft field.
    """
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(f'Unknown task field: {name!r}') from None


def format_field_value(value: FieldValue) -> str:
    if value is None:
        return ''
    if isinstance(value, datetime.datetime):
        return value.strftime(JOB_DATETIME_FORMAT)
    return str(value)


class TaskDraft:
    """The in-progress task record owned by one authoring session."""

    def __init__(self, max_images: int = MAX_IMAGES, **values: FieldValue) -> None:
        for f in FIELDS:
            setattr(self, f.attr, '')
        self.images = ImageBuffer(capacity=max_images)
        for name, value in values.items():
            self.set_field(name, value)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], max_images: int = MAX_IMAGES) -> 'TaskDraft':
        """Build a draft from wire- or attribute-named values; unknown keys raise KeyError."""
        return cls(max_images=max_images, **dict(data))

    def set_field(self, name: str, value: FieldValue) -> None:
        setattr(self, lookup_field(name).attr, '' if value is None else value)

    def get_field(self, name: str) -> FieldValue:
        return getattr(self, lookup_field(name).attr)

    def field_values(self) -> List[Tuple[str, str]]:
        """Wire name and string value of every field, in sending order."""
        return [(f.wire_name, format_field_value(getattr(self, f.attr))) for f in FIELDS]

    def validate(self) -> List[Violation]:
        violations: List[Violation] = []
        for f in FIELDS:
            if f.required and not format_field_value(getattr(self, f.attr)).strip():
                violations.append(MissingField(f.wire_name))
        if len(self.images) == 0:
            violations.append(NoImages())
        return violations

    def first_violation_message(self) -> Optional[str]:
        """Message for the first blocking condition, None when submittable.

        A missing photo is reported before missing fields, matching the order
        in which the form checks them.
        """
        violations = self.validate()
        if not violations:
            return None
        for v in violations:
            if isinstance(v, NoImages):
                return v.message
        return violations[0].message

    @property
    def is_submittable(self) -> bool:
        return not self.validate()

    def reset(self) -> None:
        for f in FIELDS:
            setattr(self, f.attr, '')
        self.images.clear()

    def __repr__(self) -> str:
        return (f'TaskDraft(organization_name={self.organization_name!r}, '
                f'images={len(self.images)})')
