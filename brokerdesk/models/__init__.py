from brokerdesk.authz.models import Role, User, UserClient
from brokerdesk.business.affiliates.models import Affiliate
from brokerdesk.business.agents.models import Agent
from brokerdesk.business.claims.models import Claim, ClaimInvoice
from brokerdesk.business.clients.models import Client
from brokerdesk.business.employees.models import Employee
from brokerdesk.business.insurers.models import Insurer
from brokerdesk.business.invitations.models import Invitation
from brokerdesk.business.invoices.models import Invoice
from brokerdesk.business.policies.models import Policy, PolicyAffiliate
from brokerdesk.business.tickets.models import Ticket, TicketMessage
from brokerdesk.models.audit import AuditLog
from brokerdesk.models.sequence import NumberSequence

__all__ = [
	"Affiliate",
	"Agent",
	"AuditLog",
	"Claim",
	"ClaimInvoice",
	"Client",
	"Employee",
	"Insurer",
	"Invitation",
	"Invoice",
	"NumberSequence",
	"Policy",
	"PolicyAffiliate",
	"Role",
	"Ticket",
	"TicketMessage",
	"User",
	"UserClient",
]
