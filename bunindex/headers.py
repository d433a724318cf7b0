HEADERS = ("Tab", "Title", "Date", "Page")
