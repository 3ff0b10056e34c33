from django.db import models


class Branch(models.Model):
    """Shop branches / stock locations"""
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, unique=True, blank=True, null=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @classmethod
    def get_default(cls):
        """Flagged default branch, else the oldest branch, else None"""
        return cls.objects.filter(is_default=True).order_by('id').first() or cls.objects.order_by('id').first()

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        if self.is_default:
            Branch.objects.filter(is_default=True).exclude(pk=self.pk).update(is_default=False)

    class Meta:
        db_table = 'branches'
        ordering = ['name']
