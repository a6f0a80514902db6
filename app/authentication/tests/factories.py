"""
Factory Boy factories for authentication models.

Usage:
    from authentication.tests.factories import UserFactory

    client = UserFactory()
    creator = UserFactory(creator=True)
    admin = UserFactory(admin=True)
"""

import factory

from authentication.models import User, UserRole


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Defaults to an active client. Traits switch the role.
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    display_name = factory.Faker("name")
    role = UserRole.CLIENT
    is_active = True
    is_staff = False

    class Params:
        creator = factory.Trait(
            role=UserRole.CREATOR,
            wallet_address=factory.Sequence(lambda n: f"0x{n:040x}"),
        )
        admin = factory.Trait(role=UserRole.ADMIN, is_staff=True)

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )
