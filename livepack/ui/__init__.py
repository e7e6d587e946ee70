"""Optional Qt front end: a progress dialog around a build."""
