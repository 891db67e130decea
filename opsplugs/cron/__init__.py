"""Runs local shell scripts on request and reports the results by callback."""