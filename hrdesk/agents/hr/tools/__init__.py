"""Built-in HR tools. Importing this package registers every tool."""

from hrdesk.agents.hr.tools import (  # noqa: F401
    attendance,
    audit,
    benefit,
    contract,
    employee,
    letter,
    payroll,
)
