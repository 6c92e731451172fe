"""MyExams: exam schedule filtering, selections and .ics export."""
