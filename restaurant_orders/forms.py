from django import forms
from django.utils.translation import gettext_lazy as _

from .exceptions import ValidationError
from .lifecycle import ItemStatus, OrderStatus
from .models import Category, Payment, PrepSector


def clean_or_raise(form):
    """Validate a bound payload form; raise ValidationError with its field errors."""
    if not form.is_valid():
        errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
        raise ValidationError(str(_('Invalid data')), errors=errors)
    return form.cleaned_data


# =============================================================================
# Admin
# =============================================================================

class PrepSectorForm(forms.ModelForm):
    class Meta:
        model = PrepSector
        fields = ['tenant', 'name', 'code']
        widgets = {
            'name': forms.TextInput(attrs={
                'class': 'input', 'placeholder': _('Sector name'),
            }),
            'code': forms.TextInput(attrs={
                'class': 'input', 'placeholder': 'KITCHEN',
            }),
        }

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()


class CategoryForm(forms.ModelForm):
    class Meta:
        model = Category
        fields = ['tenant', 'name', 'prep_sector', 'sort_order', 'is_active']
        widgets = {
            'name': forms.TextInput(attrs={
                'class': 'input', 'placeholder': _('Category name'),
            }),
            'prep_sector': forms.Select(attrs={'class': 'select'}),
            'sort_order': forms.NumberInput(attrs={
                'class': 'input', 'min': '0',
            }),
            'is_active': forms.CheckboxInput(attrs={'class': 'toggle'}),
        }

    def clean(self):
        cleaned = super().clean()
        tenant = cleaned.get('tenant')
        sector = cleaned.get('prep_sector')
        if tenant and sector and sector.tenant_id != tenant.pk:
            self.add_error('prep_sector', _('Prep sector belongs to another restaurant.'))
        return cleaned


# =============================================================================
# API payloads
# =============================================================================

class OrderCreateForm(forms.Form):
    tenant_slug = forms.SlugField(max_length=100)
    table_code = forms.CharField(min_length=6, max_length=6)
    items = forms.JSONField()
    customer_notes = forms.CharField(required=False, strip=True)
    tip_percentage = forms.DecimalField(required=False, min_value=0, max_digits=5, decimal_places=2)

    def clean_table_code(self):
        return self.cleaned_data['table_code'].upper()

    def clean_items(self):
        items = self.cleaned_data['items']
        if not isinstance(items, list) or not items:
            raise forms.ValidationError(_('At least one item is required'))
        return items


class OrderListForm(forms.Form):
    status = forms.ChoiceField(choices=OrderStatus.choices, required=False)
    table = forms.UUIDField(required=False)
    limit = forms.IntegerField(required=False, min_value=1, max_value=100)
    offset = forms.IntegerField(required=False, min_value=0)

    def clean(self):
        cleaned = super().clean()
        if cleaned.get('limit') is None:
            cleaned['limit'] = 50
        if cleaned.get('offset') is None:
            cleaned['offset'] = 0
        return cleaned


class OrderTransitionForm(forms.Form):
    status = forms.ChoiceField(choices=OrderStatus.choices)
    notes = forms.CharField(required=False)


class TipForm(forms.Form):
    tip_percentage = forms.DecimalField(required=False, min_value=0, max_digits=5, decimal_places=2)
    tip_amount = forms.DecimalField(required=False, min_value=0, max_digits=10, decimal_places=2)

    def clean(self):
        cleaned = super().clean()
        if (cleaned.get('tip_percentage') is None) == (cleaned.get('tip_amount') is None):
            raise forms.ValidationError(_('Provide either tip_percentage or tip_amount'))
        return cleaned


class BulkItemStatusForm(forms.Form):
    item_ids = forms.JSONField()
    status = forms.ChoiceField(choices=ItemStatus.choices)

    def clean_item_ids(self):
        ids = self.cleaned_data['item_ids']
        if not isinstance(ids, list) or not ids:
            raise forms.ValidationError(_('At least one item is required'))
        field = forms.UUIDField()
        return [field.clean(value) for value in ids]


class TicketAdvanceForm(forms.Form):
    status = forms.ChoiceField(choices=[
        (s, label) for s, label in ItemStatus.choices
        if s in (ItemStatus.IN_PROGRESS, ItemStatus.READY, ItemStatus.SERVED)
    ])


class PaymentForm(forms.Form):
    payment_method = forms.ChoiceField(choices=Payment.Method.choices)

    def __init__(self, data=None, *args, **kwargs):
        if data is not None and isinstance(data.get('payment_method'), str):
            data = dict(data, payment_method=data['payment_method'].upper())
        super().__init__(data, *args, **kwargs)
