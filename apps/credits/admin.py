from django.contrib import admin
from .models import CreditAccount, CreditTransaction


@admin.register(CreditAccount)
class CreditAccountAdmin(admin.ModelAdmin):
    list_display = ('owner_id', 'balance', 'version', 'updated_at')
    search_fields = ('owner_id',)
    readonly_fields = ('balance', 'version')


@admin.register(CreditTransaction)
class CreditTransactionAdmin(admin.ModelAdmin):
    list_display = ('idempotency_key', 'account', 'kind', 'status', 'amount', 'created_at')
    list_filter = ('kind', 'status')
    search_fields = ('idempotency_key',)
