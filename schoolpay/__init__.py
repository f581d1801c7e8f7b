"""SchoolPay: student fee configuration versioning and teacher payroll."""
