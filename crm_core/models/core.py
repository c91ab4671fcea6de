# crm_core/models/core.py

from django.db import models
from django.conf import settings


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True


# ============================================================
# Profile
# ============================================================
class Profile(TimeStampedModel):
    """
    CRM-side user profile. The admin roster for alert fan-out is every
    profile with role == "admin".
    """

    class Role(models.TextChoices):
        ADMIN = "admin", "Administrador"
        USER = "user", "Usuário"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    full_name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER, db_index=True)
    active = models.BooleanField(default=True)

    def __str__(self):
        return self.full_name or self.user.get_username()


# ============================================================
# Leads
# ============================================================
class Lead(TimeStampedModel):
    class Status(models.TextChoices):
        NAO_CONTATADO = "Não contatado", "Não contatado"
        PRIMEIRO_CONTATO = "Primeiro contato feito", "Primeiro contato feito"
        SEM_RESPOSTA = "Sem resposta", "Sem resposta"
        EM_CONVERSA = "Em conversa", "Em conversa"
        FOLLOWUP_AGENDADO = "Follow-up agendado", "Follow-up agendado"
        NAO_INTERESSADO = "Não interessado", "Não interessado"
        CONVERTIDO = "Convertido", "Convertido"

    CLOSED_STATUSES = (Status.NAO_INTERESSADO, Status.CONVERTIDO)

    nome = models.CharField(max_length=255)
    empresa = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    status = models.CharField(
        max_length=40,
        choices=Status.choices,
        default=Status.NAO_CONTATADO,
        db_index=True,
    )
    responsavel = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="leads",
    )
    proximo_followup = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.nome


# ============================================================
# Opportunities
# ============================================================
class Opportunity(TimeStampedModel):
    class Status(models.TextChoices):
        ABERTA = "aberta", "Aberta"
        GANHA = "ganha", "Ganha"
        PERDIDA = "perdida", "Perdida"

    titulo = models.CharField(max_length=255)
    lead = models.ForeignKey(
        Lead,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opportunities",
    )
    valor_estimado = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ABERTA, db_index=True)
    stage = models.CharField(max_length=100, blank=True)
    stage_changed_at = models.DateTimeField(null=True, blank=True)
    responsavel = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opportunities",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "opportunities"

    def __str__(self):
        return self.titulo


# ============================================================
# Support tickets
# ============================================================
class Ticket(TimeStampedModel):
    class Priority(models.TextChoices):
        BAIXA = "baixa", "Baixa"
        MEDIA = "media", "Média"
        ALTA = "alta", "Alta"

    class Status(models.TextChoices):
        ABERTO = "aberto", "Aberto"
        EM_ATENDIMENTO = "em_atendimento", "Em Atendimento"
        RESOLVIDO = "resolvido", "Resolvido"
        FECHADO = "fechado", "Fechado"

    OPEN_STATUSES = (Status.ABERTO, Status.EM_ATENDIMENTO)

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIA)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ABERTO, db_index=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tickets",
    )
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title


# ============================================================
# Finance
# ============================================================
class Company(TimeStampedModel):
    nome = models.CharField(max_length=255)

    class Meta:
        ordering = ["nome"]
        verbose_name_plural = "companies"

    def __str__(self):
        return self.nome


class Contract(TimeStampedModel):
    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="contracts",
    )
    opportunity = models.ForeignKey(
        Opportunity,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="contracts",
    )
    responsavel = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="contracts",
    )
    valor_total = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    numero_parcelas = models.PositiveIntegerField(null=True, blank=True)

    def __str__(self):
        return f"Contrato {self.pk} - {self.company.nome}"


class Receivable(TimeStampedModel):
    class Status(models.TextChoices):
        PENDENTE = "pendente", "Pendente"
        PAGO = "pago", "Pago"
        ATRASADO = "atrasado", "Atrasado"

    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name="receivables",
    )
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    due_date = models.DateField(db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDENTE, db_index=True)
    installment_number = models.PositiveIntegerField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["due_date", "id"]

    def __str__(self):
        return f"{self.contract} #{self.installment_number or '-'} {self.amount}"


# ============================================================
# Sessions (security telemetry)
# ============================================================
class ActiveSession(models.Model):
    """
    One row per signed-in browser session, refreshed on activity.
    Input of the security monitor.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="active_sessions",
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    last_seen_at = models.DateTimeField(db_index=True)
    revoked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-last_seen_at"]
        indexes = [
            models.Index(fields=["user", "last_seen_at"], name="active_session_user_seen_idx"),
        ]

    def __str__(self):
        return f"{self.user_id} {self.ip_address} @ {self.last_seen_at}"
