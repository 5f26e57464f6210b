"""Back-office API: customers, projects, tasks, calendar, attendance, invoices and documents."""
