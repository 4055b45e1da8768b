"""Presence System package.

Organized by feature modules (employees, devices, attendance, presence) with a
thin Flask controller layer on top of service/repository layers. The presence
package holds the reconciliation core: the freshness rule, the background
sweeper and the monthly session aggregator.
"""
